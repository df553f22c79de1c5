"""Students module - Student account views and statistics."""
