from datetime import datetime, timedelta, timezone

IST_OFFSET = timedelta(minutes=330)

TEST_PASSWORD = "correct-horse-9"

CHROME_DESKTOP = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_DESKTOP = CHROME_DESKTOP + " Edg/120.0.2210.91"
OPERA_DESKTOP = CHROME_DESKTOP + " OPR/106.0.0.0"
IE11_DESKTOP = "Mozilla/5.0 (Windows NT 10.0; WOW64; Trident/7.0; rv:11.0) like Gecko"
FIREFOX_DESKTOP = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15"
)
FIREFOX_MOBILE = "Mozilla/5.0 (Android 14; Mobile; rv:121.0) Gecko/121.0 Firefox/121.0"
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
EDGE_ANDROID = CHROME_ANDROID + " EdgA/120.0.2210.115"
CHROME_ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1"
)


def ist(hour: int, minute: int = 0, day: int = 17) -> datetime:
    """UTC instant for hour:minute on 2026-10-<day> in IST."""
    return datetime(2026, 10, day, hour, minute, tzinfo=timezone.utc) - IST_OFFSET


def last_code(mock) -> str:
    """The OTP passed to the most recent send_otp_email / send_otp_sms call."""
    return mock.await_args.args[1]
