import re
from dataclasses import dataclass
from typing import Optional

from src.domain.entities.enums import DeviceType


@dataclass(frozen=True)
class DeviceInfo:
    type: DeviceType
    browser: str
    os: str

    def describe(self) -> str:
        if self.browser == "Unknown" and self.os == "Unknown":
            return "Unknown Device"
        return f"{self.browser} on {self.os}"


UNKNOWN_DEVICE = DeviceInfo(DeviceType.unknown, "Unknown", "Unknown")

# Order matters: Edge and Opera agents also contain "chrome", Chrome contains "safari".
_BROWSERS = (
    ("Edge", re.compile(r"edg(e|a|ios)?/")),
    ("Opera", re.compile(r"opera|opr/")),
    ("Chrome", re.compile(r"chrome|chromium|crios")),
    ("Firefox", re.compile(r"firefox|fxios")),
    ("Safari", re.compile(r"safari")),
)

# Android agents contain "linux", iOS agents contain "mac os x".
_OPERATING_SYSTEMS = (
    ("Windows", re.compile(r"windows")),
    ("Android", re.compile(r"android")),
    ("iOS", re.compile(r"iphone|ipad|ipod|\bios\b")),
    ("macOS", re.compile(r"mac")),
    ("Linux", re.compile(r"linux")),
)


def parse_user_agent(user_agent: Optional[str]) -> DeviceInfo:
    """Classify a user agent string into device type, browser and OS."""
    if not user_agent:
        return UNKNOWN_DEVICE

    ua = user_agent.lower()

    if re.search(r"ipad|tablet", ua):
        device_type = DeviceType.tablet
    elif re.search(r"mobile|android|iphone|ipod", ua):
        device_type = DeviceType.mobile
    else:
        device_type = DeviceType.desktop

    browser = next((name for name, pattern in _BROWSERS if pattern.search(ua)), "Unknown")
    os_name = next(
        (name for name, pattern in _OPERATING_SYSTEMS if pattern.search(ua)), "Unknown"
    )
    return DeviceInfo(device_type, browser, os_name)
