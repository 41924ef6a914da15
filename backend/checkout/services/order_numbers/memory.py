"""Process-local order number counter."""


class InMemoryOrderNumberCounter:
    """Simple in-process order number counter.

    Shares no state with the database, other processes or restarts.
    Intended for tests and single-process demos only; production code
    uses OrderNumberAllocator.
    """

    def __init__(self, start: int = 99_999):
        self._last = start

    def next(self) -> int:
        self._last += 1
        return self._last

    async def allocate(self) -> int:
        return self.next()
