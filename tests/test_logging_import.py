"""
Test that bubbles_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    from backend_bubbles.bubbles_logging import bind_wallet, get_logger

    logger = get_logger("test")
    assert logger is not None
    for method in ("info", "debug", "warning", "error"):
        assert hasattr(logger, method)
    logger.info("test_message", key="value")
    bind_wallet("9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka").info("test_wallet_message")


def test_short_address():
    from backend_bubbles.bubbles_logging.logger import short_address

    assert short_address("abcdefghijkl") == "abcdefgh..."
    assert short_address("abc") == "abc"


def test_event_renamed_to_event_type():
    from backend_bubbles.bubbles_logging.logger import _rename_event

    out = _rename_event(None, "info", {"event": "cache_hit", "wallet_id": "abc"})
    assert out == {"event_type": "cache_hit", "message": "cache_hit", "wallet_id": "abc"}
