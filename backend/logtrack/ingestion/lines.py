from typing import Iterator, List, Optional, Tuple

def numbered_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, line) for every non-blank line"""
    for index, line in enumerate(text.split('\n'), start=1):
        line = line.rstrip('\r')
        if line.strip():
            yield index, line

def non_blank_lines(text: str, limit: Optional[int] = None) -> List[str]:
    lines = [line for _, line in numbered_lines(text)]
    return lines if limit is None else lines[:limit]
