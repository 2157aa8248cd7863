"""
Tests for confirmation code authorizers
"""

import io

import pytest

from tbank_session.authorizer import Authorizer, ConsoleAuthorizer, StaticAuthorizer
from tbank_session.errors import ConfirmationInputError


PHONE = "+79990000001"


class TestConsoleAuthorizer:
    """Test the interactive console authorizer"""

    def make(self, text):
        self.input = io.StringIO(text)
        self.output = io.StringIO()
        return ConsoleAuthorizer(self.input, self.output)

    def test_trims_whitespace(self):
        authorizer = self.make("  123456\n")
        assert authorizer.get_confirmation_code(PHONE) == "123456"

    def test_trims_control_characters(self):
        authorizer = self.make("\t\x0b 4321\r\n")
        assert authorizer.get_confirmation_code(PHONE) == "4321"

    def test_keeps_inner_spaces(self):
        authorizer = self.make("12 34\n")
        assert authorizer.get_confirmation_code(PHONE) == "12 34"

    def test_prompt_contains_identity(self):
        authorizer = self.make("0000\n")
        authorizer.get_confirmation_code(PHONE)

        assert self.output.getvalue() == f"Enter confirmation code for {PHONE}: "

    def test_reads_exactly_one_line(self):
        authorizer = self.make("1111\n2222\n")

        assert authorizer.get_confirmation_code(PHONE) == "1111"
        assert self.input.read() == "2222\n"

    def test_last_line_without_newline(self):
        authorizer = self.make("987654")
        assert authorizer.get_confirmation_code(PHONE) == "987654"

    def test_closed_channel_raises(self):
        authorizer = self.make("")

        with pytest.raises(ConfirmationInputError) as exc_info:
            authorizer.get_confirmation_code(PHONE)

        assert exc_info.value.operation == "read line from stdin"

    def test_read_failure_raises(self):
        class BrokenInput(io.StringIO):
            def readline(self, *args):
                raise OSError("terminal gone")

        authorizer = ConsoleAuthorizer(BrokenInput(), io.StringIO())

        with pytest.raises(ConfirmationInputError) as exc_info:
            authorizer.get_confirmation_code(PHONE)

        assert isinstance(exc_info.value.__cause__, OSError)

    def test_closed_stream_raises(self):
        stream = io.StringIO("123\n")
        stream.close()
        authorizer = ConsoleAuthorizer(stream, io.StringIO())

        with pytest.raises(ConfirmationInputError):
            authorizer.get_confirmation_code(PHONE)

    def test_defaults_to_process_streams(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(" 555 \n"))

        code = ConsoleAuthorizer().get_confirmation_code(PHONE)

        assert code == "555"
        assert f"Enter confirmation code for {PHONE}: " in capsys.readouterr().out


class TestStaticAuthorizer:
    """Test the fixed-code authorizer"""

    def test_returns_code_and_records_requests(self):
        authorizer = StaticAuthorizer("2468")

        assert isinstance(authorizer, Authorizer)
        assert authorizer.get_confirmation_code(PHONE) == "2468"
        assert authorizer.get_confirmation_code("+70000000000") == "2468"
        assert authorizer.requests == [PHONE, "+70000000000"]
