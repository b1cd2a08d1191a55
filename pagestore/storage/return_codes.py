"""
存储管理器的返回码。

所有页文件操作都返回一个 ReturnCode，而不是抛出异常；
调用方如果更习惯异常风格，可以调用 rc.check() 将失败转换为 StorageError。
"""

from enum import IntEnum
from typing import Dict, Type


class ReturnCode(IntEnum):
    """封闭的返回码枚举，数值沿用经典存储管理器的 RC 编号"""
    OK = 0
    FILE_NOT_FOUND = 1
    FILE_HANDLE_NOT_INIT = 2
    WRITE_FAILED = 3
    READ_NON_EXISTING_PAGE = 4

    @property
    def ok(self) -> bool:
        return self == ReturnCode.OK

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    def check(self) -> 'ReturnCode':
        """失败时抛出对应的 StorageError，成功时原样返回。"""
        raise_for_code(self)
        return self


_MESSAGES: Dict[ReturnCode, str] = {
    ReturnCode.OK: "ok",
    ReturnCode.FILE_NOT_FOUND: "page file cannot be created, opened or removed",
    ReturnCode.FILE_HANDLE_NOT_INIT: "file handle is not initialized or already closed",
    ReturnCode.WRITE_FAILED: "write to page file failed",
    ReturnCode.READ_NON_EXISTING_PAGE: "page does not exist in page file",
}


class StorageError(Exception):
    """返回码的异常形式，code 保存原始的 ReturnCode"""
    def __init__(self, code: ReturnCode, detail: str = ""):
        self.code = code
        self.detail = detail
        text = f"{code.name}: {code.message}"
        if detail:
            text += f" ({detail})"
        super().__init__(text)


class FileUnavailableError(StorageError):
    pass


class HandleNotInitializedError(StorageError):
    pass


class WriteFailedError(StorageError):
    pass


class PageOutOfRangeError(StorageError):
    pass


_ERROR_TYPES: Dict[ReturnCode, Type[StorageError]] = {
    ReturnCode.FILE_NOT_FOUND: FileUnavailableError,
    ReturnCode.FILE_HANDLE_NOT_INIT: HandleNotInitializedError,
    ReturnCode.WRITE_FAILED: WriteFailedError,
    ReturnCode.READ_NON_EXISTING_PAGE: PageOutOfRangeError,
}


def raise_for_code(code: ReturnCode, detail: str = "") -> None:
    code = ReturnCode(code)
    if code == ReturnCode.OK:
        return
    raise _ERROR_TYPES[code](code, detail)
