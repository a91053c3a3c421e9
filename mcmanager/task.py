"""Background operations and the watchers used to observe them.

Every long running piece of work (network lookups, downloads, file copies) runs in an
`Operation`, a daemon thread that never touches shared state. Events and the final 
result are handed back through a queue and consumed by the coordinating thread when it
calls `Operation.wait`, this thread is then the only one mutating shared state.
"""

from threading import Thread
from queue import Queue
from enum import Enum

from typing import Optional, Callable, Dict, Any


class Watcher:
    """Base class for a watcher of the install and authentication processes.
    """
    
    def handle(self, event: Any) -> None:
        """Called when the watcher can handle the given event. Default implementation
        does nothing.
        """


class SimpleWatcher(Watcher):
    """A watcher dispatching events to handlers depending on the exact event type.
    """

    def __init__(self, handlers: Dict[type, Callable[[Any], None]]) -> None:
        self.handlers = handlers

    def handle(self, event: Any) -> None:
        handler = self.handlers.get(type(event))
        if handler is not None:
            handler(event)


class QueueWatcher(Watcher):
    """Watcher given to background operations, events are only queued and will be 
    dispatched later from the coordinating thread.
    """

    def __init__(self, queue: Queue) -> None:
        self.queue = queue

    def handle(self, event: Any) -> None:
        self.queue.put(event)


class OperationState(Enum):
    """State of an operation, replacing the boolean "working" flags.
    """
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class _OperationDone:
    """Internal sentinel pushed in the operation's queue once its target returned.
    """
    __slots__ = "value", "error"
    def __init__(self, value: Any, error: Optional[BaseException]) -> None:
        self.value = value
        self.error = error


class Operation:
    """A unit of background work. The target is called with a watcher that must be used
    for all events, because events are forwarded to the watcher given to `wait`.

    The state is only updated by the thread calling `start` and `wait`: it's RUNNING
    until the result has been received, then SUCCEEDED or FAILED with the exception
    kept in `reason`.
    """

    def __init__(self, name: str, target: Callable[[Watcher], Any]) -> None:
        self.name = name
        self.target = target
        self.state = OperationState.IDLE
        self.reason: Optional[BaseException] = None
        self._value: Any = None
        self._queue = Queue()

    def start(self) -> "Operation":
        """Start the operation in a daemon thread, returning itself.
        """

        if self.state != OperationState.IDLE:
            raise ValueError(f"operation {self.name} already started")

        self.state = OperationState.RUNNING
        Thread(target=self._run, daemon=True, name=f"Operation {self.name}").start()
        return self

    def _run(self) -> None:
        watcher = QueueWatcher(self._queue)
        try:
            value = self.target(watcher)
        except Exception as e:
            self._queue.put(_OperationDone(None, e))
        except BaseException as e:
            # Still unblock the waiting thread before dying.
            self._queue.put(_OperationDone(None, e))
            raise
        else:
            self._queue.put(_OperationDone(value, None))

    def wait(self, watcher: Optional[Watcher] = None) -> Any:
        """Block until the operation completes, dispatching its events to the given
        watcher in the meantime. This returns the target's value or raise its error.
        """

        if self.state == OperationState.IDLE:
            raise ValueError(f"operation {self.name} not started")

        if self.state == OperationState.RUNNING:

            while True:
                item = self._queue.get()
                if isinstance(item, _OperationDone):
                    break
                if watcher is not None:
                    watcher.handle(item)
            
            if item.error is not None:
                self.state = OperationState.FAILED
                self.reason = item.error
            else:
                self.state = OperationState.SUCCEEDED
                self._value = item.value

        if self.state == OperationState.FAILED:
            assert self.reason is not None
            raise self.reason
        
        return self._value

    def __repr__(self) -> str:
        return f"<Operation {self.name} {self.state.value}>"


def run_operation(name: str, target: Callable[[Watcher], Any], watcher: Optional[Watcher] = None) -> Any:
    """Shortcut for starting an operation and immediately waiting for it.
    """
    return Operation(name, target).start().wait(watcher)
