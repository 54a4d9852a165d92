from pathlib import Path
from typing import Optional, Union


class NitroError(Exception):
    pass


class InputNotFound(NitroError):

    def __init__(self, path: Union[str, Path], what: str=''):
        self.path = Path(path)
        self.what = what or self.path.name
        super().__init__(f'{self.what} not found: {self.path}')


class PermissionDenied(NitroError):

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Can't write in the directory, check permissions: {self.path}")


class TruncatedInput(NitroError):

    def __init__(self, offset: int, expected: int, actual: int):
        self.offset = offset
        self.expected = expected
        self.actual = actual
        super().__init__(f'Unexpected end of data at 0x{offset:08X}: wanted {expected} bytes, got {actual}')


class MalformedNameTable(NitroError):

    def __init__(self, message: str, offset: Optional[int]=None):
        self.offset = offset
        if offset is not None:
            message = f'{message} (at 0x{offset:08X})'
        super().__init__(message)


class OffsetMismatch(NitroError):

    def __init__(self, path: str, expected: int, actual: int):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f'{path}: real offset differs from assumed one (assumed 0x{expected:08X}, real 0x{actual:08X})')


class InvalidHostEntry(NitroError):

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f'{reason}: {self.path}')
