"""Run-file interpreter and step execution engine for native test stubs.

The `stubrun` package compiles a small line-oriented test-run language
into an ordered list of executable steps and drives each step against
a dynamically resolved native test-stub module.

Key features:
- run-files with repeatable nested blocks and file includes;
- a fixed capability set resolved once from a shared library or a
  Python module;
- synchronous and polled long-running execution with timeouts;
- pass/fail/skip aggregation into a flat text report;
- a command-line front end and a pytest plugin.
"""
