"""
Selection-eligibility and scoring engine.

This package holds the league engine: pure computations plus the ORM
services that persist their results.

Structure:
- lifecycle.py: Round status state machine and pick lock
- normalization.py: Name matching between picks, catalog and results
- cycles.py: Usage cycles ("no repeats until every entity was used")
- scoring.py: Points for one selection from one round's results
- results.py: Results ingestion from the feed
- selections.py: Pick submission, eligibility and empty-record seeding
- standings.py: Leaderboard rebuilds
- completion.py: Cascade run when a round completes
- auto_assignment.py: Deadline sweep that fills missing picks
- exceptions.py: Engine errors and warning categories
"""
