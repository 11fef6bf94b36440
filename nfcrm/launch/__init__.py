"""NF Mentoring Launch Import.

Reconciles the LearningSuite course roster against the onboarding CSV export
and imports new members with a cooldown between records. Progress is polled
by the operator UI; the run can be paused or reset mid-way.
"""
