from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from typing import Any, Callable, Optional


class APIException(Exception):
    """ Base class for all exceptions in the QuickBites API. """

    def __init__(self, detail: Optional[str] = None, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context


class ShopFullException(APIException):
    """ Exception is raised when no slot anywhere in the horizon can carry the cart. """
    pass


class SlotInvalidatedException(APIException):
    """ Exception is raised when the selected slot was removed or no longer has room for the cart. """
    pass


class RestaurantInactiveException(APIException):
    """ Exception is raised when a restaurant in the cart is closed or unknown at checkout. """
    pass


class InvalidCouponException(APIException):
    """ Exception is raised when a coupon code or usage does not exist. """
    pass


class ExpiredCouponException(APIException):
    """ Exception is raised when a coupon is inactive or outside its validity window. """
    pass


class UsageLimitReachedException(APIException):
    """ Exception is raised when the user has used a coupon as many times as allowed. """
    pass


class PaymentProcessorException(APIException):
    """ Exception is raised when the payment processor cannot be reached or rejects the request. """
    pass


class InvalidWebhookException(APIException):
    """ Exception is raised when a payment webhook fails signature verification or is malformed. """
    pass


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedException(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def create_exception_handler(status_code: int, code: str, detail: Any) -> Callable[[Request, Exception], JSONResponse]:
    async def exception_handler(request: Request, exception: APIException):
        content = {"code": code, "detail": exception.detail or detail}
        if exception.context:
            content.update(exception.context)

        return JSONResponse(
            content=content,
            status_code=status_code
        )

    return exception_handler
