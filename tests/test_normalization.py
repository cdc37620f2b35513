import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from normalization import DateParseError, normalize_amount, normalize_date


class TestNormalizeAmount:
    """Tests for normalize_amount."""

    def test_european_and_american_notation_agree(self):
        """Test that both decimal conventions resolve to the same value."""
        assert normalize_amount("1.234,56") == 1234.56
        assert normalize_amount("1,234.56") == 1234.56

    def test_garbage_returns_zero(self):
        """Test that unparseable input yields 0 instead of raising."""
        assert normalize_amount("garbage") == 0.0

    def test_empty_and_none_return_zero(self):
        """Test empty string, whitespace and None."""
        assert normalize_amount("") == 0.0
        assert normalize_amount("   ") == 0.0
        assert normalize_amount(None) == 0.0

    def test_numbers_pass_through(self):
        """Test int, float and Decimal inputs."""
        assert normalize_amount(12) == 12.0
        assert normalize_amount(-5.99) == -5.99
        assert normalize_amount(Decimal("3.50")) == 3.5

    def test_currency_symbols_and_spaces_stripped(self):
        """Test that currency symbols and whitespace are removed first."""
        assert normalize_amount("€ 1.234,56") == 1234.56
        assert normalize_amount("$1,000.00") == 1000.0
        assert normalize_amount("-12,50 €") == -12.5

    def test_comma_only_decimal(self):
        """Test a European amount without thousands separators."""
        assert normalize_amount("-5,99") == -5.99

    def test_multiple_thousands_separators(self):
        """Test amounts with several grouping separators."""
        assert normalize_amount("1.234.567,89") == 1234567.89
        assert normalize_amount("1,234,567.89") == 1234567.89

    def test_negative_amount(self):
        """Test that the sign is kept."""
        assert normalize_amount("-1.234,56") == -1234.56

    def test_bool_is_not_a_number(self):
        """Test that booleans do not become 1.0/0.0 amounts."""
        assert normalize_amount(True) == 0.0


class TestNormalizeDate:
    """Tests for normalize_date."""

    def test_iso_date(self):
        """Test ISO YYYY-MM-DD."""
        assert normalize_date("2024-01-15") == datetime(2024, 1, 15)

    def test_european_slash_date(self):
        """Test DD/MM/YYYY."""
        assert normalize_date("15/01/2024") == datetime(2024, 1, 15)

    def test_european_dash_date(self):
        """Test DD-MM-YYYY."""
        assert normalize_date("15-01-2024") == datetime(2024, 1, 15)

    def test_two_digit_year_before_50(self):
        """Test that two-digit years below 50 map to the 2000s."""
        assert normalize_date("15/01/24") == datetime(2024, 1, 15)

    def test_two_digit_year_from_50(self):
        """Test that two-digit years from 50 map to the 1900s."""
        assert normalize_date("15/01/85") == datetime(1985, 1, 15)

    def test_spreadsheet_serial(self):
        """Test spreadsheet serial numbers (45306 is 2024-01-15)."""
        assert normalize_date(45306) == datetime(2024, 1, 15)
        assert normalize_date("45306") == datetime(2024, 1, 15)

    def test_serial_out_of_range_raises(self):
        """Test that serials outside 1900-2100 are rejected."""
        with pytest.raises(DateParseError):
            normalize_date(10)
        with pytest.raises(DateParseError):
            normalize_date(99999999)

    def test_date_and_datetime_objects(self):
        """Test that date objects pass through as midnight datetimes."""
        assert normalize_date(date(2024, 1, 15)) == datetime(2024, 1, 15)
        assert normalize_date(datetime(2024, 1, 15, 10, 30)) == datetime(2024, 1, 15, 10, 30)

    def test_aware_datetime_converted_to_utc(self):
        """Test that timezone-aware values become naive UTC."""
        value = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert normalize_date(value) == datetime(2024, 1, 15, 12, 0)

    def test_iso_timestamp(self):
        """Test full ISO timestamps with a Z suffix."""
        assert normalize_date("2024-01-15T08:30:00Z") == datetime(2024, 1, 15, 8, 30)

    def test_invalid_calendar_date_raises(self):
        """Test that 31 February is a parse error, not a crash."""
        with pytest.raises(DateParseError):
            normalize_date("31/02/2024")

    def test_garbage_raises(self):
        """Test that text that is not a date raises DateParseError."""
        with pytest.raises(DateParseError, match="Unable to parse date"):
            normalize_date("yesterday")

    def test_parse_error_is_value_error(self):
        """Test that callers catching ValueError also catch DateParseError."""
        with pytest.raises(ValueError):
            normalize_date("")
