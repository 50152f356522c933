"""tests/test_captcha.py -- Four-digit challenge generation and matching."""

from __future__ import annotations

from auth.captcha import CAPTCHA_MAX, CAPTCHA_MIN, captcha_matches, generate_captcha


class TestGenerateCaptcha:
    def test_four_digits_in_range(self) -> None:
        for _ in range(500):
            code = generate_captcha()
            assert len(code) == 4
            assert code.isdigit()
            assert CAPTCHA_MIN <= int(code) <= CAPTCHA_MAX


class TestCaptchaMatches:
    def test_exact_match(self) -> None:
        assert captcha_matches("4821", "4821") is True

    def test_mismatch(self) -> None:
        assert captcha_matches("4821", "4822") is False

    def test_no_expected_code_never_matches(self) -> None:
        """A cleared or never-issued challenge rejects every submission."""
        assert captcha_matches(None, "4821") is False
        assert captcha_matches("", "") is False

    def test_empty_submission(self) -> None:
        assert captcha_matches("4821", "") is False
        assert captcha_matches("4821", None) is False
