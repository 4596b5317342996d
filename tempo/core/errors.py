from typing import Optional


class AdviceError(RuntimeError):
    code = "ADVICE_ERROR"
    recoverable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialError(AdviceError):
    code = "MISSING_API_KEY"
    recoverable = False


class ProviderConnectionError(AdviceError):
    code = "PROVIDER_CONNECTION_ERROR"


class ProviderError(AdviceError):
    code = "PROVIDER_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)


class MalformedResponse(AdviceError):
    code = "INVALID_AI_RESPONSE"


class NotJSON(AdviceError):
    code = "INVALID_JSON_RESPONSE"


class IncompleteAdvice(AdviceError):
    code = "INVALID_AI_RESPONSE_STRUCTURE"

    def __init__(self, field: str):
        super().__init__(f"AI response missing required field: {field}")
        self.field = field


class HealthDataUnavailable(AdviceError):
    code = "HEALTH_DATA_UNAVAILABLE"


class EnvironmentUnavailable(AdviceError):
    code = "ENVIRONMENT_UNAVAILABLE"


class CoordinateOutOfRange(AdviceError):
    code = "COORDINATE_OUT_OF_RANGE"
    recoverable = False

    def __init__(self, latitude: float, longitude: float):
        super().__init__(
            f"Invalid coordinates lat={latitude} lon={longitude}. "
            "Latitude must be within [-90, 90] and longitude within [-180, 180].",
            status_code=400,
        )
        self.latitude = latitude
        self.longitude = longitude


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise CoordinateOutOfRange(latitude, longitude)
