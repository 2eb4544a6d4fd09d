from dataclasses import dataclass


@dataclass(frozen=True)
class ResponseStatus(object):
    code: int = 0
    is_success: bool = False
    user_message: str = ""
    developer_message: str = ""

    @staticmethod
    def from_dict(status: dict) -> "ResponseStatus":
        return ResponseStatus(
            code=status["code"],
            is_success=status["is_success"],
            user_message=status["user_message"],
            developer_message=status["developer_message"],
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "is_success": self.is_success,
            "user_message": self.user_message,
            "developer_message": self.developer_message,
        }
