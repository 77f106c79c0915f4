"""
Domain errors raised by the order/invoice/notification handlers.

They subclass FastAPI's HTTPException so a handler can raise them anywhere in the
call stack and the client still gets `{"detail": ...}` with the right status.
"""
from fastapi import HTTPException


class PosError(HTTPException):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(status_code=type(self).status_code, detail=detail)


class ValidationError(PosError):
    status_code = 400


class NotFoundError(PosError):
    status_code = 404


class InsufficientStockError(PosError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = int(available)
        self.requested = int(requested)
        super().__init__(
            f"Not enough stock for {product_name}. Available: {self.available}, Requested: {self.requested}"
        )


class RenderError(PosError):
    status_code = 400


class UploadError(PosError):
    status_code = 400


class AuthorizationError(PosError):
    status_code = 403
