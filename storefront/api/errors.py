# storefront/api/errors.py
from fastapi import HTTPException

from storefront.domain.errors import StorefrontError


def to_http(e: StorefrontError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={"error": e.category, "message": e.message},
    )
