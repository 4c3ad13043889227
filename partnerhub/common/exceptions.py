from fastapi import HTTPException, status


class PartnerHubException(HTTPException):
    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(PartnerHubException):
    def __init__(self, resource: str, resource_id: str | None = None):
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} '{resource_id}' not found"
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class BadRequestError(PartnerHubException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class InvalidRangeError(BadRequestError):
    """Rejected date range or schedule definition; raised before any work starts."""


class GenerationFailedError(PartnerHubException):
    def __init__(self, report_id: str, reason: str):
        self.report_id = report_id
        self.reason = reason
        super().__init__(
            detail=f"Report generation failed ({report_id}): {reason}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class ExternalServiceError(PartnerHubException):
    def __init__(self, service: str, detail: str | None = None):
        msg = f"External service error: {service}"
        if detail:
            msg += f" - {detail}"
        super().__init__(detail=msg, status_code=status.HTTP_502_BAD_GATEWAY)


class DeliveryFailedError(ExternalServiceError):
    def __init__(self, failed_recipients: list[str], detail: str | None = None):
        self.failed_recipients = failed_recipients
        msg = f"could not deliver to {', '.join(failed_recipients)}"
        if detail:
            msg += f" ({detail})"
        super().__init__("email", msg)
