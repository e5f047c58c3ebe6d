"""Tests for mail_source.strategy."""

from __future__ import annotations

import pytest

from mail_source.exceptions import IncompatibleOptionsError
from mail_source.strategy import (
    ImapIdleStrategy,
    ImapPollStrategy,
    Pop3PollStrategy,
    RetrievalOptions,
    StrategyKind,
    select_strategy,
)
from mail_source.url import parse_store_url


class TestSelectStrategy:
    @pytest.mark.parametrize("scheme", ["imap", "imaps"])
    def test_imap_poll(self, scheme: str):
        url = parse_store_url(f"{scheme}://u:p@mail.example.com/INBOX")
        options = RetrievalOptions(
            mark_as_read=True,
            delete=True,
            user_flag="archived",
            selector_expression="FROM boss@example.com",
        )
        strategy = select_strategy(url, options)
        assert isinstance(strategy, ImapPollStrategy)
        assert strategy.kind is StrategyKind.IMAP_POLL
        assert strategy.mark_as_read is True
        assert strategy.delete is True
        assert strategy.user_flag == "archived"
        assert strategy.selector_expression == "FROM boss@example.com"
        assert strategy.transport.store_protocol == scheme

    @pytest.mark.parametrize("scheme", ["imap", "imaps"])
    def test_imap_idle(self, scheme: str):
        url = parse_store_url(f"{scheme}://u:p@mail.example.com/INBOX")
        strategy = select_strategy(url, RetrievalOptions(idle_imap=True, delete=True))
        assert isinstance(strategy, ImapIdleStrategy)
        assert strategy.kind is StrategyKind.IMAP_IDLE
        assert strategy.delete is True

    @pytest.mark.parametrize("scheme", ["pop3", "pop3s"])
    def test_pop3_poll(self, scheme: str):
        url = parse_store_url(f"{scheme}://u:p@mail.example.com/INBOX")
        strategy = select_strategy(url, RetrievalOptions(delete=True))
        assert isinstance(strategy, Pop3PollStrategy)
        assert strategy.kind is StrategyKind.POP3_POLL
        assert strategy.delete is True
        assert strategy.transport.uses_tls is (scheme == "pop3s")

    @pytest.mark.parametrize("scheme", ["pop3", "pop3s"])
    def test_idle_with_pop3_is_rejected(self, scheme: str):
        url = parse_store_url(f"{scheme}://u:p@mail.example.com/INBOX")
        with pytest.raises(IncompatibleOptionsError, match="IMAP IDLE"):
            select_strategy(url, RetrievalOptions(idle_imap=True))

    def test_pop3_ignores_imap_only_options(self):
        url = parse_store_url("pop3://u:p@mail.example.com/INBOX")
        strategy = select_strategy(
            url,
            RetrievalOptions(
                mark_as_read=True,
                user_flag="processed",
                selector_expression="UNANSWERED",
            ),
        )
        assert isinstance(strategy, Pop3PollStrategy)
        assert not hasattr(strategy, "mark_as_read")
        assert not hasattr(strategy, "user_flag")
        assert not hasattr(strategy, "selector_expression")

    def test_protocol_properties_reach_transport(self):
        url = parse_store_url("imaps://u:p@mail.example.com/INBOX")
        strategy = select_strategy(
            url,
            RetrievalOptions(protocol_properties={"mail.imap.socket_factory.fallback": "true"}),
        )
        assert strategy.transport.fallback is True

    def test_strategy_is_immutable(self):
        url = parse_store_url("imap://u:p@mail.example.com/INBOX")
        strategy = select_strategy(url, RetrievalOptions())
        with pytest.raises(AttributeError):
            strategy.delete = True  # type: ignore[misc]
