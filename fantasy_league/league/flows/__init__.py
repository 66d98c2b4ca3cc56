"""
Prefect flows for the league's time-driven jobs.

Structure:
- deadline_sweep.py: refresh round statuses, then auto-assign missing picks
- round_completion.py: score a completed round and post a Slack summary
"""
