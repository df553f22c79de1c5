"""
Students Router

Endpoints:
- GET /students - Active students (admin)
- GET /students-stats - Student and payment counts (admin)
- GET /students/{id} - Student profile (admin or the student)
- GET /students/{id}/application - The student's admission application (admin or the student)
- GET /students/{id}/payments - The student's payments (admin or the student)
- PUT /students/{id} - Update name/email (admin or the student)
- DELETE /students/{id} - Deactivate (admin)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, ensure_self_or_admin, get_current_user, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.modules.admissions.schemas import AdmissionResponse
from portal.modules.payments import service as payments_service
from portal.modules.payments.schemas import PaymentResponse
from portal.modules.shared.schemas import MessageResponse
from portal.modules.students import service
from portal.modules.students.schemas import StudentStats, StudentUpdate
from portal.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_ERROR_DETAIL,
    )


@router.get("/students", response_model=list[UserResponse], summary="List Students")
async def list_students(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> list[UserResponse]:
    try:
        students = await service.list_students(db)
        return [UserResponse.model_validate(s) for s in students]
    except Exception as e:
        logger.exception(f"Error listing students: {e}")
        raise _internal_error() from e


@router.get("/students-stats", response_model=StudentStats, summary="Student Statistics")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> StudentStats:
    try:
        return StudentStats(**await service.get_stats(db))
    except Exception as e:
        logger.exception(f"Error computing student stats: {e}")
        raise _internal_error() from e


@router.get(
    "/students/{student_id}",
    response_model=UserResponse,
    summary="Get Student",
    responses={404: {"description": "Student not found"}},
)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> UserResponse:
    ensure_self_or_admin(current_user, student_id)

    try:
        return UserResponse.model_validate(await service.get_student(db, student_id))
    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error fetching student {student_id}: {e}")
        raise _internal_error() from e


@router.get(
    "/students/{student_id}/application",
    response_model=AdmissionResponse,
    summary="Get Student Application",
    responses={404: {"description": "Student or application not found"}},
)
async def get_student_application(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AdmissionResponse:
    ensure_self_or_admin(current_user, student_id)

    try:
        admission = await service.get_student_application(db, student_id)
        return AdmissionResponse.from_admission(admission)
    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error fetching application for student {student_id}: {e}")
        raise _internal_error() from e


@router.get(
    "/students/{student_id}/payments",
    response_model=list[PaymentResponse],
    summary="List Student Payments",
)
async def list_student_payments(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[PaymentResponse]:
    ensure_self_or_admin(current_user, student_id)

    try:
        payments = await payments_service.list_student_payments(db, student_id)
        return [PaymentResponse.model_validate(p) for p in payments]
    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing payments for student {student_id}: {e}")
        raise _internal_error() from e


@router.put(
    "/students/{student_id}",
    response_model=UserResponse,
    summary="Update Student",
    responses={
        404: {"description": "Student not found"},
        409: {"description": "Email already in use"},
    },
)
async def update_student(
    student_id: UUID,
    data: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> UserResponse:
    ensure_self_or_admin(current_user, student_id)

    try:
        student = await service.update_student(db, student_id, data)
        return UserResponse.model_validate(student)
    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating student {student_id}: {e}")
        raise _internal_error() from e


@router.delete(
    "/students/{student_id}",
    response_model=MessageResponse,
    summary="Deactivate Student",
    description="Soft delete: the account is kept but can no longer log in.",
    responses={404: {"description": "Student not found"}},
)
async def deactivate_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> MessageResponse:
    try:
        student = await service.deactivate_student(db, student_id)
        logger.info(f"Admin {admin.id} deactivated student {student.id}")
        return MessageResponse(message="Student deactivated successfully")
    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error deactivating student {student_id}: {e}")
        raise _internal_error() from e
