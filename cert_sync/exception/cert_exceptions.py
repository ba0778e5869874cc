from pathlib import Path
from typing import Any


class CertSyncError(Exception):
    msg: str
    detail: Any
    
    def __init__(
        self, 
        msg: str, 
        *, 
        detail: Any = None
    ) -> None:
        self.msg = msg
        self.detail = detail
        super().__init__(f"{msg}: {detail}" if detail else msg)


class CaBootstrapError(CertSyncError):
    def __init__(self, msg: str, *, detail: Any = None) -> None:
        super().__init__(f"Failed to bootstrap root CA, {msg}", detail=detail)


class RuntimeQueryError(CertSyncError):
    def __init__(self, msg: str, *, detail: Any = None) -> None:
        super().__init__(f"Container runtime query failed, {msg}", detail=detail)


class IssuanceError(CertSyncError):
    container_id: str | None
    
    def __init__(
        self, 
        msg: str, 
        *, 
        container_id: str | None = None, 
        detail: Any = None
    ) -> None:
        self.container_id = container_id
        super().__init__(msg, detail=detail)


class StoreError(CertSyncError):
    path: Path
    
    def __init__(self, path: Path, msg: str, *, detail: Any = None) -> None:
        self.path = path
        super().__init__(f"{msg} '{path}'", detail=detail)


class PublishError(CertSyncError):
    conf_file: Path
    
    def __init__(self, conf_file: Path, msg: str, *, detail: Any = None) -> None:
        self.conf_file = conf_file
        super().__init__(f"{msg} '{conf_file}'", detail=detail)
