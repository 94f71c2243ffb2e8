from ipmonitor.errors import ErrorReporter


def _reporter(daemonized):
    daemon, interactive = [], []
    reporter = ErrorReporter(
        daemonized=daemonized,
        daemon_sink=daemon.append,
        interactive_sink=interactive.append,
    )
    return reporter, daemon, interactive


def test_interactive_mode_uses_interactive_sink():
    reporter, daemon, interactive = _reporter(False)
    reporter.report("Packet receive failed")
    assert interactive == ["Packet receive failed"]
    assert daemon == []


def test_daemon_mode_uses_daemon_sink():
    reporter, daemon, interactive = _reporter(True)
    reporter.report("Specified interface not active")
    assert daemon == ["Specified interface not active"]
    assert interactive == []


def test_arguments_are_formatted():
    reporter, _, interactive = _reporter(False)
    text = reporter.report("Unable to resolve %s", "host.example.com")
    assert text == "Unable to resolve host.example.com"
    assert interactive == [text]


def test_percent_without_args_is_literal():
    reporter, daemon, _ = _reporter(True)
    assert reporter.report("100% done") == "100% done"
    assert daemon == ["100% done"]