import logging

from isoviz.log import LOG_FORMAT, get_logger, setup_logging


def _stream_handlers(logger):
    return [h for h in logger.handlers if type(h) is logging.StreamHandler]


def test_get_logger_is_namespaced():
    logger = get_logger("isoviz.core.ranges")
    assert logger.name == "isoviz.core.ranges"
    assert logging.getLogger("isoviz").handlers


def test_setup_logging_is_idempotent():
    get_logger("isoviz.core.merge")
    root = setup_logging(logging.DEBUG)
    try:
        setup_logging(logging.DEBUG)
        handlers = _stream_handlers(root)
        assert len(handlers) == 1
        assert handlers[0].formatter._fmt == LOG_FORMAT
        assert root.level == logging.DEBUG
    finally:
        for h in _stream_handlers(root):
            root.removeHandler(h)
        root.setLevel(logging.NOTSET)
