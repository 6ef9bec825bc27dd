"""Tests of the run-file interpreter and step execution engine."""
