import threading

import pytest

from mcmanager.util import MavenArtifact
from mcmanager.task import Operation, OperationState, SimpleWatcher, run_operation


def test_maven_artifact():

    artifact = MavenArtifact("net.fabricmc", "fabric-installer", "0.11.2")
    assert artifact.file_path() == "net/fabricmc/fabric-installer/0.11.2/fabric-installer-0.11.2.jar"

    artifact = MavenArtifact("net.minecraftforge", "forge", "1.20.1-47.1.0", "installer")
    assert artifact.file_path() == "net/minecraftforge/forge/1.20.1-47.1.0/forge-1.20.1-47.1.0-installer.jar"


def test_operation():

    events = []
    main_thread = threading.current_thread()

    def target(watcher):
        watcher.handle("a")
        watcher.handle("b")
        return 42

    def handle(event):
        # Events are dispatched on the waiting thread.
        events.append((event, threading.current_thread() is main_thread))

    op = Operation("test", target)
    assert op.state == OperationState.IDLE

    with pytest.raises(ValueError):
        op.wait()

    op.start()
    assert op.wait(SimpleWatcher({str: handle})) == 42
    assert op.state == OperationState.SUCCEEDED
    assert events == [("a", True), ("b", True)]

    # Result is kept.
    assert op.wait() == 42

    with pytest.raises(ValueError):
        op.start()


def test_operation_failed():

    def target(watcher):
        raise RuntimeError("failed")

    op = Operation("test", target).start()
    with pytest.raises(RuntimeError):
        op.wait()

    assert op.state == OperationState.FAILED
    assert isinstance(op.reason, RuntimeError)

    with pytest.raises(RuntimeError):
        op.wait()


def test_run_operation():

    received = []
    watcher = SimpleWatcher({int: received.append})

    def target(watcher):
        watcher.handle(1)
        watcher.handle("ignored")
        return "done"

    assert run_operation("test", target, watcher) == "done"
    assert received == [1]


def test_format_number():

    from mcmanager.cli.util import format_number

    assert format_number(0) == "0 "
    assert format_number(999) == "999 "
    assert format_number(1000) == "1.0 k"
    assert format_number(999999) == "999.9 k"
    assert format_number(1000000) == "1.0 M"
    assert format_number(1000000000) == "1.0 G"


def test_anonymize_email():

    from mcmanager.cli.util import anonymize_email

    assert anonymize_email("steve@example.com") == "s***e@e*****e.com"
    assert anonymize_email("ab@cd.net") == "ab@cd.net"
    assert anonymize_email("steve") == "s***e"
