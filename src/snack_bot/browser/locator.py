"""Discovery of a local Chromium-family browser and a profile to reuse."""

import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Callable, List, Mapping, Optional, Union

from snack_bot.utils.logging import get_logger

logger = get_logger(__name__)

BROWSER_PATH_ENV = "BROWSER_PATH"
USER_DATA_DIR_ENV = "USER_DATA_DIR"

PROFILE_NAMES = ("Default", "Profile 1", "Profile 2")


class BrowserVendor(str, Enum):
    """Supported browser families, in selection priority order."""
    BRAVE = "brave"
    CHROME = "chrome"
    CHROMIUM = "chromium"

    @classmethod
    def classify(cls, path: str) -> Optional["BrowserVendor"]:
        """Infer the vendor from the path text, or None if unrecognised."""
        lowered = path.lower()
        for vendor in cls:
            if vendor.value in lowered:
                return vendor
        return None


@dataclass(frozen=True)
class BrowserCandidate:
    """An installed browser executable."""
    path: str
    vendor: Optional[BrowserVendor] = None


@dataclass(frozen=True)
class ProfileDirectory:
    """A browser user data location."""
    path: str
    vendor: Optional[BrowserVendor] = None


@dataclass(frozen=True)
class ResolvedEnvironment:
    """Browser and profile chosen for one run. Any field may be None."""
    browser_path: Optional[str] = None
    user_data_dir: Optional[str] = None
    browser_type: Optional[BrowserVendor] = None

    @property
    def is_usable(self) -> bool:
        """Whether the system browser can be launched with a real profile."""
        return bool(self.browser_path and self.user_data_dir)


def path_exists(path: str) -> bool:
    """Existence check that treats any access failure as absence."""
    try:
        return os.path.exists(path)
    except (OSError, ValueError):
        return False


class BrowserLocator:
    """
    Resolves a browser executable and profile directory for the host.

    Environment overrides (``BROWSER_PATH``, ``USER_DATA_DIR``) short-circuit
    discovery when they point at something that exists. Otherwise well-known
    installation and profile locations for the detected platform are checked.
    Nothing is cached: every call reflects the filesystem at that moment.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        platform: Optional[str] = None,
        home: Optional[Union[str, Path]] = None,
        exists: Optional[Callable[[str], bool]] = None
    ):
        """
        Initialize the locator.

        Args:
            environ: Environment mapping (defaults to os.environ at call time)
            platform: Platform identifier as in sys.platform
            home: User home directory
            exists: Existence predicate for candidate paths
        """
        self._environ = environ
        self.platform = platform or sys.platform
        self._home = str(home) if home is not None else None
        self._exists = exists or path_exists
        self.logger = logger.bind(component="browser_locator")

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    @property
    def family(self) -> str:
        """Operating system family: linux, darwin, win32 or other."""
        if self.platform.startswith("linux"):
            return "linux"
        if self.platform in ("darwin", "win32"):
            return self.platform
        return "other"

    @property
    def home(self) -> str:
        return self._home if self._home is not None else str(Path.home())

    def _join(self, *parts: str) -> str:
        if self.family == "win32":
            return str(PureWindowsPath(*parts))
        return str(PurePosixPath(*parts))

    def _check(self, path: str) -> bool:
        try:
            return bool(self._exists(path))
        except Exception:
            return False

    def _override(self, name: str) -> Optional[str]:
        value = self.environ.get(name)
        if value and self._check(value):
            return value
        return None

    def browser_paths(self) -> List[str]:
        """Well-known installation paths for this platform, most preferred first."""
        family = self.family
        if family == "linux":
            return [
                "/snap/bin/brave",
                "/snap/bin/chromium",
                "/usr/bin/brave-browser",
                "/usr/bin/brave",
                "/usr/bin/google-chrome",
                "/usr/bin/chromium-browser",
                "/usr/bin/chromium",
            ]
        if family == "darwin":
            return [
                "/Applications/Brave Browser.app/Contents/MacOS/Brave Browser",
                "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
                "/Applications/Chromium.app/Contents/MacOS/Chromium",
            ]
        if family == "win32":
            program_files = self.environ.get("PROGRAMFILES") or "C:\\Program Files"
            program_files_x86 = self.environ.get("PROGRAMFILES(X86)") or "C:\\Program Files (x86)"
            paths = []
            for relative in (
                ("BraveSoftware", "Brave-Browser", "Application", "brave.exe"),
                ("Google", "Chrome", "Application", "chrome.exe"),
                ("Chromium", "Application", "chromium.exe"),
            ):
                paths.append(self._join(program_files, *relative))
                paths.append(self._join(program_files_x86, *relative))
            return paths
        return []

    def profile_root(self, vendor: BrowserVendor) -> Optional[str]:
        """The vendor's root user data directory on this platform."""
        family = self.family
        if family == "linux":
            relative = {
                BrowserVendor.BRAVE: (".config", "BraveSoftware", "Brave-Browser"),
                BrowserVendor.CHROME: (".config", "google-chrome"),
                BrowserVendor.CHROMIUM: (".config", "chromium"),
            }
        elif family == "darwin":
            relative = {
                BrowserVendor.BRAVE: ("Library", "Application Support", "BraveSoftware", "Brave-Browser"),
                BrowserVendor.CHROME: ("Library", "Application Support", "Google", "Chrome"),
                BrowserVendor.CHROMIUM: ("Library", "Application Support", "Chromium"),
            }
        elif family == "win32":
            relative = {
                BrowserVendor.BRAVE: ("AppData", "Local", "BraveSoftware", "Brave-Browser", "User Data"),
                BrowserVendor.CHROME: ("AppData", "Local", "Google", "Chrome", "User Data"),
                BrowserVendor.CHROMIUM: ("AppData", "Local", "Chromium", "User Data"),
            }
        else:
            return None
        return self._join(self.home, *relative[BrowserVendor(vendor)])

    def resolve_browser_candidates(self) -> List[BrowserCandidate]:
        """
        Existing browser executables, in platform preference order.

        Returns:
            The override alone when BROWSER_PATH exists, else the filtered
            platform list with vendors classified from the path text
        """
        override = self._override(BROWSER_PATH_ENV)
        if override:
            return [BrowserCandidate(path=override)]

        return [
            BrowserCandidate(path=path, vendor=BrowserVendor.classify(path))
            for path in self.browser_paths()
            if self._check(path)
        ]

    def resolve_profile_directories(self, vendor: BrowserVendor) -> List[ProfileDirectory]:
        """
        Existing profile directories for a vendor.

        Named profiles come before the vendor root. USER_DATA_DIR, when it
        exists, is returned alone.
        """
        override = self._override(USER_DATA_DIR_ENV)
        if override:
            return [ProfileDirectory(path=override, vendor=vendor)]

        root = self.profile_root(vendor)
        if root is None:
            return []

        paths = [self._join(root, name) for name in PROFILE_NAMES] + [root]
        return [
            ProfileDirectory(path=path, vendor=vendor)
            for path in paths
            if self._check(path)
        ]

    def select_browser(self, candidates: List[BrowserCandidate]) -> Optional[BrowserCandidate]:
        """First candidate of the highest-priority vendor present."""
        for vendor in BrowserVendor:
            for candidate in candidates:
                if vendor.value in candidate.path.lower():
                    return BrowserCandidate(path=candidate.path, vendor=vendor)
        return None

    def resolve(self, log: bool = False) -> ResolvedEnvironment:
        """
        Pick a browser and profile for the current host.

        Args:
            log: Log the selection

        Returns:
            ResolvedEnvironment; all fields None when no supported browser exists
        """
        selected = self.select_browser(self.resolve_browser_candidates())

        if selected is None:
            if log:
                self.logger.warning("No supported browser found", platform=self.platform)
            return ResolvedEnvironment()

        profiles = self.resolve_profile_directories(selected.vendor)
        user_data_dir = profiles[0].path if profiles else None

        if log:
            self.logger.info(
                "Selected browser",
                browser_type=selected.vendor.value,
                browser_path=selected.path
            )
            self.logger.info("Selected profile", user_data_dir=user_data_dir)

        return ResolvedEnvironment(
            browser_path=selected.path,
            user_data_dir=user_data_dir,
            browser_type=selected.vendor
        )


def create_browser_locator(
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
    home: Optional[Union[str, Path]] = None,
    exists: Optional[Callable[[str], bool]] = None
) -> BrowserLocator:
    """Factory function to create a browser locator."""
    return BrowserLocator(environ=environ, platform=platform, home=home, exists=exists)


def resolve_browser_and_profile(log: bool = False) -> ResolvedEnvironment:
    """Resolve against the live environment and filesystem."""
    return create_browser_locator().resolve(log=log)
