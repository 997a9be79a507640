import time
from typing import Iterable, Iterator, TypeVar

T = TypeVar('T')


def paced(items: Iterable[T], delay: float, sleep=time.sleep) -> Iterator[T]:
    """
    Yield items in order with a fixed pause between consecutive items.

    The pause starts when the caller comes back for the next item, i.e. after it has
    finished with the previous one. No pause before the first item or after the last.
    """
    first = True
    for item in items:
        if not first and delay > 0:
            sleep(delay)
        first = False
        yield item
