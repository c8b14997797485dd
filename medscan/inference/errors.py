from typing import Optional


class DecodeError(Exception):
    """The uploaded bytes could not be turned into pixels. Terminal for that file."""

    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(message)
        self.filename = filename

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{self.filename}: {msg}" if self.filename else msg
