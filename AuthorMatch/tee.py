from __future__ import annotations

import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from .config import TEE_BUFFER_SIZE

T = TypeVar("T")

_END = object()


class _Branch(Generic[T]):
    """
    One consumer's view of the shared stream, backed by a bounded queue.
    """

    def __init__(self, maxsize: int):
        self.queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self.finished = False

    def __iter__(self) -> Iterator[T]:
        while not self.finished:
            item = self.queue.get()
            if item is _END:
                self.finished = True
                return
            yield item

    def drain(self) -> None:
        for _ in self:
            pass


class Tee(Generic[T]):
    """
    Fan one stream out to several independently paced consumers.

    Every item of ``source`` is delivered, in order, to every consumer. Each
    consumer gets its own queue of at most ``maxsize`` items, and the
    producer waits whenever any queue is full, so a slow consumer holds back
    the source instead of letting memory grow. Nothing is dropped.

    A consumer that raises stops consuming but its queue keeps being
    drained, so the other consumers run to completion. The first error, from
    the source or any consumer, is raised once every branch has finished.
    """

    def __init__(self, source: Iterable[T], maxsize: int = TEE_BUFFER_SIZE):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.source = source
        self.maxsize = maxsize

    def run(self, *consumers: Callable[[Iterator[T]], Any]) -> List[Any]:
        if not consumers:
            raise ValueError("at least one consumer is required")

        branches: List[_Branch[T]] = [_Branch(self.maxsize) for _ in consumers]
        errors: List[BaseException] = []
        errors_lock = threading.Lock()

        def consume(consumer: Callable[[Iterator[T]], Any], branch: _Branch[T]) -> Any:
            try:
                return consumer(iter(branch))
            except BaseException as e:
                with errors_lock:
                    errors.append(e)
                return None
            finally:
                branch.drain()

        with ThreadPoolExecutor(max_workers=len(consumers), thread_name_prefix="tee") as executor:
            futures = [executor.submit(consume, c, b) for c, b in zip(consumers, branches)]
            source_error: Optional[BaseException] = None
            try:
                for item in self.source:
                    for branch in branches:
                        branch.queue.put(item)
            except BaseException as e:
                source_error = e
            finally:
                for branch in branches:
                    branch.queue.put(_END)
            results = [f.result() for f in futures]

        if source_error is not None:
            raise source_error
        if errors:
            raise errors[0]
        return results
