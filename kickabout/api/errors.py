"""
Mapping from typed service failures to HTTP responses.
"""

from fastapi import HTTPException, status

from kickabout.services import errors

ERROR_STATUS_CODES = {
    errors.Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    errors.InvalidTarget: status.HTTP_400_BAD_REQUEST,
    errors.NotFound: status.HTTP_404_NOT_FOUND,
    errors.Forbidden: status.HTTP_403_FORBIDDEN,
    errors.AlreadyExists: status.HTTP_409_CONFLICT,
    errors.Blocked: status.HTTP_403_FORBIDDEN,
    errors.SelfRating: status.HTTP_400_BAD_REQUEST,
    errors.AlreadySubmitted: status.HTTP_409_CONFLICT,
}


def service_error_to_http(error: errors.ServiceError) -> HTTPException:
    """Translate a typed service failure into an HTTPException carrying its kind and ids."""
    status_code = ERROR_STATUS_CODES.get(type(error), status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, errors.Unauthenticated) else None
    return HTTPException(status_code=status_code, detail=error.to_dict(), headers=headers)
