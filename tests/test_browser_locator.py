"""Tests for browser and profile discovery."""

import pytest
from hypothesis import given, strategies as st, settings

from snack_bot.browser.locator import (
    BrowserCandidate,
    BrowserLocator,
    BrowserVendor,
    ProfileDirectory,
    ResolvedEnvironment,
    create_browser_locator,
)

LINUX_PATHS = [
    "/snap/bin/brave",
    "/snap/bin/chromium",
    "/usr/bin/brave-browser",
    "/usr/bin/brave",
    "/usr/bin/google-chrome",
    "/usr/bin/chromium-browser",
    "/usr/bin/chromium",
]

HOME = "/home/op"


def make_locator(existing=(), environ=None, platform="linux", home=HOME):
    existing = set(existing)
    return create_browser_locator(
        environ=environ or {},
        platform=platform,
        home=home,
        exists=lambda path: path in existing,
    )


class TestBrowserCandidates:
    """Installation path discovery."""

    def test_nothing_installed(self):
        assert make_locator().resolve_browser_candidates() == []

    def test_filters_to_existing_in_platform_order(self):
        locator = make_locator(existing=["/usr/bin/chromium", "/usr/bin/google-chrome"])

        candidates = locator.resolve_browser_candidates()

        assert candidates == [
            BrowserCandidate("/usr/bin/google-chrome", BrowserVendor.CHROME),
            BrowserCandidate("/usr/bin/chromium", BrowserVendor.CHROMIUM),
        ]

    def test_override_short_circuits_discovery(self):
        locator = make_locator(
            existing=["/opt/custom/brave", "/usr/bin/google-chrome"],
            environ={"BROWSER_PATH": "/opt/custom/brave"},
        )

        assert locator.resolve_browser_candidates() == [BrowserCandidate("/opt/custom/brave")]

    def test_missing_override_is_ignored(self):
        locator = make_locator(
            existing=["/usr/bin/google-chrome"],
            environ={"BROWSER_PATH": "/opt/missing/brave"},
        )

        assert [c.path for c in locator.resolve_browser_candidates()] == ["/usr/bin/google-chrome"]

    def test_macos_paths(self):
        chrome = "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"
        locator = make_locator(existing=[chrome], platform="darwin")

        assert locator.resolve_browser_candidates() == [BrowserCandidate(chrome, BrowserVendor.CHROME)]

    def test_windows_paths_use_program_files(self):
        locator = make_locator(platform="win32", environ={"PROGRAMFILES": "D:\\Apps"})

        paths = locator.browser_paths()

        assert paths[0] == "D:\\Apps\\BraveSoftware\\Brave-Browser\\Application\\brave.exe"
        assert paths[1] == "C:\\Program Files (x86)\\BraveSoftware\\Brave-Browser\\Application\\brave.exe"
        assert paths[-1] == "C:\\Program Files (x86)\\Chromium\\Application\\chromium.exe"
        assert len(paths) == 6

    def test_unknown_platform_has_no_candidates(self):
        locator = make_locator(existing=LINUX_PATHS, platform="sunos5")

        assert locator.resolve_browser_candidates() == []

    def test_existence_errors_mean_absent(self):
        def exploding(path):
            raise PermissionError(path)

        locator = BrowserLocator(environ={"BROWSER_PATH": "/x"}, platform="linux", exists=exploding)

        assert locator.resolve_browser_candidates() == []
        assert locator.resolve() == ResolvedEnvironment()

    @given(existing=st.sets(st.sampled_from(LINUX_PATHS)))
    @settings(max_examples=50)
    def test_only_existing_paths_returned(self, existing):
        candidates = make_locator(existing=existing).resolve_browser_candidates()

        paths = [c.path for c in candidates]
        assert set(paths) == existing
        assert paths == [p for p in LINUX_PATHS if p in existing]

    @given(
        existing=st.sets(st.sampled_from(LINUX_PATHS)),
        override=st.sampled_from(["/opt/a/brave", "/opt/b/chrome"]),
    )
    @settings(max_examples=30)
    def test_existing_override_always_wins(self, existing, override):
        locator = make_locator(existing=set(existing) | {override}, environ={"BROWSER_PATH": override})

        assert locator.resolve_browser_candidates() == [BrowserCandidate(override)]


class TestProfileDirectories:
    """Profile directory discovery."""

    def test_named_profiles_before_root(self):
        root = f"{HOME}/.config/google-chrome"
        locator = make_locator(existing=[root, f"{root}/Profile 2", f"{root}/Default"])

        profiles = locator.resolve_profile_directories(BrowserVendor.CHROME)

        assert [p.path for p in profiles] == [f"{root}/Default", f"{root}/Profile 2", root]
        assert all(p.vendor == BrowserVendor.CHROME for p in profiles)

    def test_override_short_circuits(self):
        root = f"{HOME}/.config/BraveSoftware/Brave-Browser"
        locator = make_locator(
            existing=[f"{root}/Default", "/data/profile"],
            environ={"USER_DATA_DIR": "/data/profile"},
        )

        assert locator.resolve_profile_directories(BrowserVendor.BRAVE) == [
            ProfileDirectory("/data/profile", BrowserVendor.BRAVE)
        ]

    def test_macos_chromium_root(self):
        root = f"{HOME}/Library/Application Support/Chromium"
        locator = make_locator(existing=[root], platform="darwin")

        assert [p.path for p in locator.resolve_profile_directories(BrowserVendor.CHROMIUM)] == [root]

    def test_windows_brave_default(self):
        home = "C:\\Users\\op"
        default = "C:\\Users\\op\\AppData\\Local\\BraveSoftware\\Brave-Browser\\User Data\\Default"
        locator = make_locator(existing=[default], platform="win32", home=home)

        assert [p.path for p in locator.resolve_profile_directories(BrowserVendor.BRAVE)] == [default]

    @given(
        vendor=st.sampled_from(list(BrowserVendor)),
        present=st.sets(st.sampled_from(["Default", "Profile 1", "Profile 2", ""])),
    )
    @settings(max_examples=50)
    def test_only_existing_and_root_last(self, vendor, present):
        locator = make_locator()
        root = locator.profile_root(vendor)
        existing = {f"{root}/{name}" if name else root for name in present}
        locator = make_locator(existing=existing)

        paths = [p.path for p in locator.resolve_profile_directories(vendor)]

        assert set(paths) == existing
        if root in paths:
            assert paths[-1] == root


class TestResolve:
    """Browser and profile selection."""

    def test_no_browser_gives_empty_environment(self):
        environment = make_locator().resolve(log=True)

        assert environment == ResolvedEnvironment()
        assert environment.is_usable is False

    def test_vendor_priority_beats_list_order(self):
        # chromium comes first in the linux list, chrome still wins
        root = f"{HOME}/.config/google-chrome"
        locator = make_locator(existing=["/snap/bin/chromium", "/usr/bin/google-chrome", f"{root}/Default"])

        environment = locator.resolve(log=True)

        assert environment == ResolvedEnvironment(
            browser_path="/usr/bin/google-chrome",
            user_data_dir=f"{root}/Default",
            browser_type=BrowserVendor.CHROME,
        )
        assert environment.is_usable is True

    def test_browser_without_profile(self):
        environment = make_locator(existing=["/usr/bin/brave"]).resolve()

        assert environment.browser_path == "/usr/bin/brave"
        assert environment.browser_type == BrowserVendor.BRAVE
        assert environment.user_data_dir is None
        assert environment.is_usable is False

    def test_unclassifiable_override_resolves_nothing(self):
        locator = make_locator(existing=["/opt/firefox"], environ={"BROWSER_PATH": "/opt/firefox"})

        assert locator.resolve() == ResolvedEnvironment()

    def test_override_is_classified_at_resolution(self):
        locator = make_locator(
            existing=["/opt/Chromium/chromium", "/profiles/mine"],
            environ={"BROWSER_PATH": "/opt/Chromium/chromium", "USER_DATA_DIR": "/profiles/mine"},
        )

        assert locator.resolve() == ResolvedEnvironment(
            browser_path="/opt/Chromium/chromium",
            user_data_dir="/profiles/mine",
            browser_type=BrowserVendor.CHROMIUM,
        )

    def test_resolution_reflects_filesystem_changes(self):
        existing = set()
        locator = BrowserLocator(environ={}, platform="linux", home=HOME, exists=lambda p: p in existing)

        assert locator.resolve().browser_path is None
        existing.add("/usr/bin/brave")
        assert locator.resolve().browser_path == "/usr/bin/brave"

    @given(paths=st.permutations(["/x/chromium", "/x/google-chrome", "/x/brave"]))
    def test_selection_ignores_enumeration_order(self, paths):
        locator = make_locator()
        candidates = [BrowserCandidate(p, BrowserVendor.classify(p)) for p in paths]

        assert locator.select_browser(candidates) == BrowserCandidate("/x/brave", BrowserVendor.BRAVE)
        assert locator.select_browser([c for c in candidates if "brave" not in c.path]).vendor == BrowserVendor.CHROME


@pytest.mark.parametrize(
    "path,vendor",
    [
        ("/usr/bin/brave-browser", BrowserVendor.BRAVE),
        ("/Applications/Google Chrome.app/Contents/MacOS/Google Chrome", BrowserVendor.CHROME),
        ("C:\\Program Files\\Chromium\\Application\\chromium.exe", BrowserVendor.CHROMIUM),
        ("/usr/bin/firefox", None),
    ],
)
def test_vendor_classification(path, vendor):
    assert BrowserVendor.classify(path) == vendor
