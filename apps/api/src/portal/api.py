from fastapi import APIRouter

from portal.modules.admissions.admin_router import router as admin_admissions_router
from portal.modules.admissions.router import router as admissions_router
from portal.modules.auth.router import router as auth_router
from portal.modules.fees.router import router as fees_router
from portal.modules.notifications.router import router as notifications_router
from portal.modules.payments.router import router as payments_router
from portal.modules.signups.router import router as signups_router
from portal.modules.students.router import router as students_router
from portal.modules.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(auth_router, tags=["Authentication"])

api_router.include_router(admissions_router, tags=["Admissions"])

api_router.include_router(admin_admissions_router, tags=["Admin - Applications"])

api_router.include_router(
    signups_router,
    prefix="/pending-signups",
    tags=["Admin - Pending Signups"],
)

api_router.include_router(students_router, tags=["Students"])

api_router.include_router(payments_router, tags=["Payments"])

api_router.include_router(fees_router, tags=["Fees"])

api_router.include_router(users_router, prefix="/users", tags=["Admin - Users"])

api_router.include_router(
    notifications_router,
    prefix="/notifications",
    tags=["Admin - Notifications"],
)
