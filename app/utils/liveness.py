class Liveness:
    """
    Cancellation token shared by an owner and the async work it starts.

    Work that completes after ``cancel()`` must check ``alive`` and drop its
    result instead of writing it back to the owner.
    """

    def __init__(self):
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def cancel(self) -> None:
        self._alive = False
