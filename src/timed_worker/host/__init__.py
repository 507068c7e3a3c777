"""
Host-environment adapters.

Components:
- grant.py: LocalExecutionHost (process-local execution grants with an optional budget)
- tick.py: ThreadTickSource (repeating timer on a daemon thread)
- resume.py: ResumeCoordinator + LocalHostScheduler (relaunch / bounded resume windows)
"""
