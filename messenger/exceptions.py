class AppError(Exception):
    """Base error carrying an HTTP-style status code next to the message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):

    status_code = 400


class NotFoundError(AppError):

    status_code = 404
