from ipmonitor.paths import PATH_MAX, Directories, DirType, get_path

DIRS = Directories(
    workdir="/var/work",
    logdir="/var/logs",
    lockdir="/var/lock",
    workdir_env="WORK_ENV",
    logdir_env="LOG_ENV",
)


def test_workdir_path():
    assert get_path(DirType.WORKDIR, "filters.dat", DIRS, {}) == "/var/work/filters.dat"


def test_logdir_path():
    assert get_path(DirType.LOGDIR, "x.log", DIRS, {}) == "/var/logs/x.log"


def test_environment_overrides_workdir():
    env = {"WORK_ENV": "/tmp/alt"}
    assert get_path(DirType.WORKDIR, "f", DIRS, env) == "/tmp/alt/f"


def test_environment_overrides_logdir():
    env = {"LOG_ENV": "/tmp/logs"}
    assert get_path(DirType.LOGDIR, "f", DIRS, env) == "/tmp/logs/f"


def test_lockdir_ignores_environment():
    env = {"WORK_ENV": "/tmp/alt", "LOG_ENV": "/tmp/logs"}
    assert get_path(DirType.LOCKDIR, "pid", DIRS, env) == "/var/lock/pid"


def test_execdir_returns_file_unchanged():
    assert get_path(DirType.EXECDIR, "prog", DIRS, {}) == "prog"


def test_empty_environment_value_returns_file():
    env = {"WORK_ENV": ""}
    assert get_path(DirType.WORKDIR, "name", DIRS, env) == "name"


def test_empty_directory_returns_file():
    dirs = Directories(workdir="", logdir="", lockdir="")
    assert get_path(DirType.LOGDIR, "name", dirs, {}) == "name"


def test_long_path_is_truncated():
    result = get_path(DirType.WORKDIR, "a" * (PATH_MAX * 2), DIRS, {})
    assert len(result) == PATH_MAX - 2
    assert result.startswith("/var/work/")