class FormatError(ValueError):
    """Raised when a start date or recurrence rule string is malformed."""

    pass


class TaskError(Exception):
    """Base class for task store and controller errors."""

    pass


class TaskValidationError(TaskError):
    """Raised when a task's fields are rejected before being stored."""

    pass


class TaskNotFoundError(TaskError):
    """Raised when no task exists with the requested id."""

    pass


# Mapping of exceptions to CLI exit codes
EXIT_CODES = {
    FormatError: 2,
    TaskValidationError: 2,
    TaskNotFoundError: 3,
    TaskError: 1,
}


def exit_code_for(exc: Exception) -> int:
    for exc_type in type(exc).__mro__:
        if exc_type in EXIT_CODES:
            return EXIT_CODES[exc_type]
    return 1
