# bibfetch/providers/pagination.py
from dataclasses import dataclass


@dataclass(frozen=True)
class PageConvention:
    """How a provider numbers pages on the wire.

    Callers always count pages from 0. A provider sends
    ``base + page_index * stride`` in its ``parameter``:

    - 1-based page numbers: ``PageConvention("page", base=1)``
    - result offsets: ``PageConvention("offset", base=0, stride=page_size)``
    """

    parameter: str
    base: int = 1
    stride: int = 1

    def __post_init__(self) -> None:
        if self.stride < 1:
            raise ValueError(f"Page stride must be >= 1, got {self.stride}")

    def to_provider(self, page_index: int) -> int:
        """Zero-based page index -> provider page parameter value."""
        if page_index < 0:
            raise ValueError(f"Page index must be >= 0, got {page_index}")
        return self.base + page_index * self.stride

    def from_provider(self, value: int) -> int:
        """Provider page parameter value -> zero-based page index."""
        index, remainder = divmod(value - self.base, self.stride)
        if index < 0 or remainder:
            raise ValueError(f"{self.parameter}={value} is not a page boundary")
        return index

    def params(self, page_index: int) -> dict[str, str]:
        return {self.parameter: str(self.to_provider(page_index))}
