"""
Device classifier: user-agent + request addresses → DeviceFingerprint.

Every detection step is an ordered list of (predicate, result) probes evaluated
top to bottom against the lower-cased user-agent; the first matching probe wins.
Order encodes precedence where vendor tokens overlap:
  - Edge UAs also contain "chrome/" and "safari/" → Edge is probed first
  - Chrome UAs also contain "safari/"            → Chrome before Safari
  - Opera (opr/) and iOS ("like mac os x") UAs carry the tokens of the
    browser / OS probed before them, so those probes exclude them explicitly

classify() never raises: every table ends in an "unknown" fallback.
"""
import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Callable, Optional


class BrowserName(str, Enum):
    CHROME = "chrome"
    EDGE = "edge"
    FIREFOX = "firefox"
    SAFARI = "safari"
    OPERA = "opera"
    IE = "ie"
    UNKNOWN = "unknown"


class DeviceType(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
    UNKNOWN = "unknown"


UNKNOWN = "unknown"

BROWSER_FULL_NAMES = {
    BrowserName.EDGE: "Microsoft Edge",
    BrowserName.CHROME: "Google Chrome",
    BrowserName.FIREFOX: "Mozilla Firefox",
    BrowserName.SAFARI: "Apple Safari",
    BrowserName.OPERA: "Opera",
    BrowserName.IE: "Internet Explorer",
    BrowserName.UNKNOWN: "Unknown Browser",
}


@dataclass(frozen=True)
class DeviceFingerprint:
    browser_name: BrowserName
    browser_version: str
    os_name: str
    os_version: str
    platform: str
    device_type: DeviceType
    ip_address: str
    user_agent: str = ""
    device_vendor: str = "Unknown"
    device_model: str = "Unknown"

    @property
    def browser_full_name(self) -> str:
        return BROWSER_FULL_NAMES[self.browser_name]

    def to_dict(self) -> dict:
        """JSON-safe form, embedded in pending login sessions."""
        data = asdict(self)
        data["browser_name"] = self.browser_name.value
        data["device_type"] = self.device_type.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceFingerprint":
        return cls(
            browser_name=BrowserName(data.get("browser_name", UNKNOWN)),
            browser_version=data.get("browser_version", UNKNOWN),
            os_name=data.get("os_name", "Unknown"),
            os_version=data.get("os_version", UNKNOWN),
            platform=data.get("platform", UNKNOWN),
            device_type=DeviceType(data.get("device_type", UNKNOWN)),
            ip_address=data.get("ip_address", "Unknown"),
            user_agent=data.get("user_agent", ""),
            device_vendor=data.get("device_vendor", "Unknown"),
            device_model=data.get("device_model", "Unknown"),
        )


Predicate = Callable[[str], bool]


def _has(*tokens: str) -> Predicate:
    return lambda ua: any(t in ua for t in tokens)


def _version(pattern: str, ua: str) -> str:
    match = re.search(pattern, ua)
    if not match:
        return UNKNOWN
    return match.group(1).replace("_", ".")


# ── Browser probes ────────────────────────────────────────────────────────────
# (predicate, browser, version regex)
BROWSER_PROBES: list[tuple[Predicate, BrowserName, str]] = [
    (_has("edg/", "edge/", "edga/", "edgios/"), BrowserName.EDGE, r"edg(?:e|a|ios)?/(\d+\.?\d*)"),
    (lambda ua: "chrome/" in ua and "edg" not in ua and "opr/" not in ua, BrowserName.CHROME, r"chrome/(\d+\.?\d*)"),
    (_has("firefox/"), BrowserName.FIREFOX, r"firefox/(\d+\.?\d*)"),
    (lambda ua: "safari/" in ua and "chrome" not in ua, BrowserName.SAFARI, r"version/(\d+\.?\d*)"),
    (_has("opera/", "opr/"), BrowserName.OPERA, r"(?:opera|opr)/(\d+\.?\d*)"),
    (_has("msie", "trident/"), BrowserName.IE, r"(?:msie |rv:)(\d+\.?\d*)"),
]

# ── OS probes ─────────────────────────────────────────────────────────────────
# (predicate, name, fixed version or None, version regex or None, platform)
OS_PROBES: list[tuple[Predicate, str, Optional[str], Optional[str], str]] = [
    (_has("windows nt 10.0"), "Windows", "10/11", None, "windows"),
    (_has("windows nt 6.3"), "Windows", "8.1", None, "windows"),
    (_has("windows nt 6.2"), "Windows", "8", None, "windows"),
    (_has("windows nt 6.1"), "Windows", "7", None, "windows"),
    (_has("windows"), "Windows", UNKNOWN, None, "windows"),
    (lambda ua: "mac os x" in ua and not _has("iphone", "ipad")(ua), "macOS", None, r"mac os x (\d+[._]\d+)", "mac"),
    (_has("iphone", "ipad"), "iOS", None, r"os (\d+[._]\d+)", "ios"),
    (_has("android"), "Android", None, r"android (\d+\.?\d*)", "android"),
    (_has("linux"), "Linux", UNKNOWN, None, "linux"),
]

# ── Device-type probes ────────────────────────────────────────────────────────
DEVICE_TYPE_PROBES: list[tuple[Predicate, DeviceType]] = [
    (_has("mobile"), DeviceType.MOBILE),
    (lambda ua: "tablet" in ua or "ipad" in ua or ("android" in ua and "mobile" not in ua), DeviceType.TABLET),
    (_has("windows", "mac os x", "linux"), DeviceType.DESKTOP),
]

VENDOR_PROBES: list[tuple[Predicate, str]] = [
    (_has("samsung"), "Samsung"),
    (_has("huawei"), "Huawei"),
    (_has("xiaomi"), "Xiaomi"),
    (_has("oppo"), "Oppo"),
    (_has("vivo"), "Vivo"),
    (_has("oneplus"), "OnePlus"),
    (_has("nokia"), "Nokia"),
    (_has("motorola"), "Motorola"),
    (_has("lg"), "LG"),
    (_has("iphone", "ipad", "macintosh"), "Apple"),
    (_has("pixel"), "Google"),
    (_has("windows"), "Microsoft"),
]


def detect_browser(ua: str) -> tuple[BrowserName, str]:
    for predicate, name, version_pattern in BROWSER_PROBES:
        if predicate(ua):
            return name, _version(version_pattern, ua)
    return BrowserName.UNKNOWN, UNKNOWN


def detect_os(ua: str) -> tuple[str, str, str]:
    """Returns (os_name, os_version, platform)."""
    for predicate, name, fixed_version, version_pattern, platform in OS_PROBES:
        if predicate(ua):
            version = fixed_version if version_pattern is None else _version(version_pattern, ua)
            return name, version, platform
    return "Unknown", UNKNOWN, UNKNOWN


def detect_device_type(ua: str) -> DeviceType:
    for predicate, device_type in DEVICE_TYPE_PROBES:
        if predicate(ua):
            return device_type
    return DeviceType.UNKNOWN


def detect_vendor(ua: str) -> str:
    for predicate, vendor in VENDOR_PROBES:
        if predicate(ua):
            return vendor
    return "Unknown"


def detect_model(ua: str, device_type: DeviceType) -> str:
    if device_type == DeviceType.DESKTOP:
        return "Desktop Computer"
    if device_type == DeviceType.UNKNOWN:
        return "Unknown"
    if "iphone" in ua:
        match = re.search(r"iphone\s?(\w+)?", ua)
        suffix = match.group(1) if match and match.group(1) else ""
        return f"iPhone {suffix}".strip()
    if "ipad" in ua:
        return "iPad"
    if "pixel" in ua:
        match = re.search(r"pixel (\d+)", ua)
        return f"Pixel {match.group(1)}" if match else "Pixel"
    android_model = re.search(r";\s*([^;)]+)\s+build", ua)
    if android_model:
        return android_model.group(1).strip()
    return "Unknown Model"


def resolve_ip(
    forwarded_for: Optional[str],
    direct_address: Optional[str],
    real_ip: Optional[str] = None,
) -> str:
    """X-Forwarded-For (first hop) → X-Real-IP → socket peer → "Unknown"."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    for candidate in (real_ip, direct_address):
        if candidate and candidate.strip():
            return candidate.strip()
    return "Unknown"


def classify(
    user_agent: Optional[str],
    forwarded_for: Optional[str],
    direct_address: Optional[str],
    real_ip: Optional[str] = None,
) -> DeviceFingerprint:
    raw = user_agent or ""
    ua = raw.lower()

    browser_name, browser_version = detect_browser(ua)
    os_name, os_version, platform = detect_os(ua)
    device_type = detect_device_type(ua)

    return DeviceFingerprint(
        browser_name=browser_name,
        browser_version=browser_version,
        os_name=os_name,
        os_version=os_version,
        platform=platform,
        device_type=device_type,
        ip_address=resolve_ip(forwarded_for, direct_address, real_ip),
        user_agent=raw or "Unknown",
        device_vendor=detect_vendor(ua) if device_type != DeviceType.UNKNOWN else "Unknown",
        device_model=detect_model(ua, device_type),
    )
