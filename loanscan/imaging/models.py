from dataclasses import dataclass


@dataclass(frozen=True)
class PageImage:
    """One normalized JPEG page ready for extraction. page_number is 1-based."""

    page_number: int
    content: bytes
