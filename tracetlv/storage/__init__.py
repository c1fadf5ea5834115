from .tags import Tag, HEADER_TYPES, tag_name
from .headers import HeaderStore, HeaderEntry
from .trs_format import TRSWriter

__all__ = [
    "Tag", "HEADER_TYPES", "tag_name",
    "HeaderStore", "HeaderEntry",
    "TRSWriter",
]
