"""Service layer: content delivery, review scheduling, exams and history."""
