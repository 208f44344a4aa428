"""Unit tests for response decoding."""

import pytest

from notch_link.errors import DecodeError
from notch_link.protocol import (
    CommandResult,
    ConsoleInfo,
    decode_info,
    decode_memory,
    decode_settings,
    decode_stats,
    is_ack,
    nack_detail,
    parse_record,
)


class TestAcknowledgements:
    """Test OK / ERR recognition."""

    @pytest.mark.parametrize("line", ["OK", "OK menu opened"])
    def test_ack(self, line):
        assert is_ack(line) is True

    @pytest.mark.parametrize("line", ["OKAY", "ok", "ERR", "NOTCH_READY"])
    def test_not_ack(self, line):
        assert is_ack(line) is False

    def test_nack_detail(self):
        assert nack_detail("ERR unknown command") == "unknown command"
        assert nack_detail("ERR: busy") == "busy"

    def test_bare_nack_has_generic_detail(self):
        assert nack_detail("ERR") == "console reported an error"

    def test_not_a_nack(self):
        assert nack_detail("OK") is None

    @pytest.mark.parametrize("line", ["ERRATA=1", "ERROR_COUNT:3", "ERRx"])
    def test_err_prefix_inside_a_word_is_not_a_nack(self, line):
        assert nack_detail(line) is None


class TestParseRecord:
    """Test key=value and JSON record parsing."""

    def test_tagged_pairs(self):
        fields = parse_record("MEMORY:sram=1024, flash=30720 ,eeprom=512", "MEMORY")

        assert fields == {"sram": "1024", "flash": "30720", "eeprom": "512"}

    def test_untagged_pairs(self):
        assert parse_record("sram=1,flash=2", "MEMORY") == {"sram": "1", "flash": "2"}

    def test_value_may_contain_colon(self):
        """A colon after the first '=' is part of the value, not a tag."""
        assert parse_record("version=1:2", "INFO") == {"version": "1:2"}

    def test_wrong_tag(self):
        with pytest.raises(DecodeError, match="Expected MEMORY response"):
            parse_record("STATS:games=1", "MEMORY")

    def test_tag_is_case_insensitive(self):
        assert parse_record("memory:sram=1", "MEMORY") == {"sram": "1"}

    def test_json_object(self):
        assert parse_record('{"sram": 1024, "flash": 2}', "MEMORY") == {"sram": 1024, "flash": 2}

    def test_truncated_json(self):
        with pytest.raises(DecodeError, match="Malformed MEMORY response"):
            parse_record('{"sram": 1', "MEMORY")

    def test_field_without_equals(self):
        with pytest.raises(DecodeError, match="bad field 'garbage'"):
            parse_record("garbage", "MEMORY")


class TestRecordDecoders:
    """Test command-specific decoders."""

    def test_decode_info(self):
        info = decode_info("INFO:firmware=NOTCH OS,version=1.2.0,device=Arduino Uno")

        assert info == ConsoleInfo(firmware="NOTCH OS", version="1.2.0", device="Arduino Uno")

    def test_decode_info_keeps_unknown_fields(self):
        info = decode_info("INFO:firmware=NOTCH OS,serial=42")

        assert info.firmware == "NOTCH OS"
        assert info.version is None
        assert info.model_extra == {"serial": "42"}

    def test_decode_settings(self):
        settings = decode_settings("SETTINGS:brightness=5,volume=3")

        assert settings.values == {"brightness": "5", "volume": "3"}
        assert settings.get("brightness") == "5"
        assert settings.get("missing") is None

    def test_decode_settings_from_json_stringifies_values(self):
        settings = decode_settings('{"brightness": 5, "sound": true}')

        assert settings.values == {"brightness": "5", "sound": "True"}

    def test_decode_memory(self):
        memory = decode_memory("MEMORY:sram=1024,flash=30720,eeprom=512")

        assert (memory.sram, memory.flash, memory.eeprom) == (1024, 30720, 512)

    def test_decode_memory_json(self):
        memory = decode_memory('{"sram": 1, "flash": 2, "eeprom": 3}')

        assert memory.eeprom == 3

    def test_decode_memory_non_numeric(self):
        with pytest.raises(DecodeError, match="sram"):
            decode_memory("MEMORY:sram=lots,flash=30720,eeprom=512")

    def test_decode_memory_missing_field(self):
        with pytest.raises(DecodeError, match="eeprom"):
            decode_memory("MEMORY:sram=1,flash=2")

    def test_decode_memory_negative(self):
        with pytest.raises(DecodeError, match="flash"):
            decode_memory("MEMORY:sram=1,flash=-2,eeprom=3")

    def test_decode_stats(self):
        stats = decode_stats("STATS:games=12,uptime=3600")

        assert stats.counters == {"games": 12, "uptime": 3600}

    def test_decode_stats_non_numeric(self):
        with pytest.raises(DecodeError, match="Malformed STATS response"):
            decode_stats("STATS:games=many")


class TestCommandResult:
    """Test the uniform result shape."""

    def test_ok(self):
        result = CommandResult.ok({"a": 1})

        assert result.success is True
        assert result.payload == {"a": 1}
        assert result.error is None

    def test_ok_without_payload(self):
        assert CommandResult.ok().payload is None

    def test_fail_from_exception(self):
        result = CommandResult.fail(DecodeError("bad line"))

        assert result.success is False
        assert result.error == "bad line"
        assert result.payload is None

    def test_fail_from_exception_without_message(self):
        assert CommandResult.fail(TimeoutError()).error == "TimeoutError"
