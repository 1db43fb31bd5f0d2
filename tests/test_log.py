import pytest

from attestclient.log import (
    LOG_TAG,
    AttestationLogger,
    LogLevel,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warn,
    reset_logger,
    set_logger,
)


class RecordingLogger(AttestationLogger):
    def __init__(self):
        self.records = []

    def log(self, tag, level, function, line, fmt, *args):
        self.records.append((tag, level, function, line, fmt, args))


@pytest.fixture(autouse=True)
def clean_logger():
    reset_logger()
    yield
    reset_logger()


def test_abstract_logger_cannot_be_instantiated():
    with pytest.raises(TypeError):
        AttestationLogger()


def test_level_labels_of_logged_records():
    logger = RecordingLogger()
    set_logger(logger)
    log_error("e")
    log_warn("w")
    log_info("i")
    log_debug("d")
    assert [record[1].label for record in logger.records] == ["Error", "Warn", "Info", "Debug"]


def test_set_logger_installs():
    logger = RecordingLogger()
    set_logger(logger)
    assert get_logger() is logger


def test_first_logger_wins():
    first = RecordingLogger()
    second = RecordingLogger()
    set_logger(first)
    set_logger(second)
    assert get_logger() is first


def test_reset_allows_new_logger():
    first = RecordingLogger()
    second = RecordingLogger()
    set_logger(first)
    reset_logger()
    assert get_logger() is None
    set_logger(second)
    assert get_logger() is second


def test_log_error_passes_tag_level_and_args():
    logger = RecordingLogger()
    set_logger(logger)
    log_error("Failed to open file:%s", "/etc/os-release")
    assert len(logger.records) == 1
    tag, level, function, line, fmt, args = logger.records[0]
    assert tag == LOG_TAG
    assert level is LogLevel.ERROR
    assert fmt == "Failed to open file:%s"
    assert args == ("/etc/os-release",)


def test_log_records_calling_function():
    logger = RecordingLogger()
    set_logger(logger)
    log_info("Retrying")
    _, _, function, line, _, _ = logger.records[0]
    assert function == "test_log_records_calling_function"
    assert line > 0


@pytest.mark.parametrize(
    "func, level",
    [
        (log_error, LogLevel.ERROR),
        (log_warn, LogLevel.WARN),
        (log_info, LogLevel.INFO),
        (log_debug, LogLevel.DEBUG),
    ],
)
def test_each_helper_uses_its_level(func, level):
    logger = RecordingLogger()
    set_logger(logger)
    func("message %d", 3)
    assert [record[1] for record in logger.records] == [level]
    assert logger.records[0][5] == (3,)


def test_messages_without_logger_are_dropped():
    log_error("lost")
    logger = RecordingLogger()
    set_logger(logger)
    assert logger.records == []
    log_warn("kept")
    assert [record[4] for record in logger.records] == ["kept"]