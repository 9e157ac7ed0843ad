"""
Snack bot: submits a Google Form through the operator's own browser.

It finds a local Chromium-family browser and profile, waits for the operator
to sign in with their organization account, ticks the configured option and
submits the form. Runs are triggered over HTTP, on a schedule, or from the CLI.
"""

__version__ = "0.1.0"
