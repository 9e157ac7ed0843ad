"""Run orchestration, failure kinds and the schedule trigger."""
