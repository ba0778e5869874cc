from enum import Enum


class CertStatus(Enum):
    OK = "OK"
    EXPIRING = "EXPIRING"
    EXPIRED = "EXPIRED"
    INCOMPLETE = "INCOMPLETE"
    INVALID = "INVALID"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]
