"""서비스 계층에서 던지는 API 예외 클래스들입니다.

모든 예외는 사용자에게 그대로 노출되는 고정 메시지와 상태 코드, 그리고
클라이언트가 분기할 수 있는 `code` 값을 가진다. main.py의 예외 핸들러가
`{"detail": message, "code": code}` 형태로 변환한다.
"""


class ApiError(Exception):
    """기본 API 예외의 최상위 클래스"""

    status_code = 500
    code = "error"
    default_message = "요청을 처리하지 못했습니다."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        # status_code가 전달되면 기본값을 덮어씀.
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(ApiError):
    """400 Bad Request"""

    status_code = 400
    code = "bad_request"
    default_message = "잘못된 요청입니다."


class NotFoundError(ApiError):
    """404 Not Found"""

    status_code = 404
    code = "not_found"
    default_message = "대상을 찾을 수 없습니다."


class ForbiddenError(ApiError):
    """403 Forbidden"""

    status_code = 403
    code = "forbidden"
    default_message = "권한이 없습니다."


class InvalidStateError(ApiError):
    """409 현재 상태에서 허용되지 않는 작업"""

    status_code = 409
    code = "invalid_state"
    default_message = "현재 상태에서는 처리할 수 없는 요청입니다."


class ConflictError(ApiError):
    """409 유니크 제약 위반. 이미 같은 키의 행이 있음"""

    status_code = 409
    code = "conflict"
    default_message = "이미 존재하는 항목입니다."


class UnsafeContentError(ApiError):
    """400 콘텐츠 안전성 검사 거부"""

    status_code = 400
    code = "unsafe"
    default_message = "내용에 부적절한 표현이 포함되어 있습니다."


class OperationFailedError(ApiError):
    """500 저장소 오류 등 내부 실패. 상세 원인은 로그로만 남긴다."""

    status_code = 500
    code = "operation_failed"
    default_message = "요청 처리에 실패했습니다. 잠시 후 다시 시도해주세요."


class UpstreamUnavailableError(ApiError):
    """AI 완성 서비스 호출 실패. 실패 종류별로 고정 메시지와 상태 코드를 쓴다."""

    KIND_MESSAGES = {
        "timeout": "AI 서비스 응답 시간이 초과되었습니다. 잠시 후 다시 시도해주세요.",
        "quota": "AI 서비스 사용 한도를 초과했습니다. 잠시 후 다시 시도해주세요.",
        "safety": "입력 내용이 AI 서비스의 안전 정책에 위배됩니다. 수정 후 다시 시도해주세요.",
        "unavailable": "AI 서비스를 일시적으로 사용할 수 없습니다. 잠시 후 다시 시도해주세요.",
    }
    KIND_STATUS = {
        "timeout": 504,
        "quota": 429,
        "safety": 422,
        "unavailable": 503,
    }

    def __init__(self, kind: str = "unavailable"):
        if kind not in self.KIND_MESSAGES:
            kind = "unavailable"
        self.kind = kind
        self.code = f"upstream_{kind}"
        super().__init__(self.KIND_MESSAGES[kind], self.KIND_STATUS[kind])


class UnauthorizedError(ApiError):
    """401 인증 실패"""

    status_code = 401
    code = "unauthorized"
    default_message = "인증이 필요합니다."
