"""Conflict-resolving rebase orchestration.

Submodules are imported directly (``rebasecat.rebase.engine`` and so
on); this package stays empty so core.config can import the run
context without pulling in the workflow.
"""
