"""Test suite for FormGate.

This package contains tests for:
- Property paths, field-group resolution and constraint checking
- Built-in validators and the validator registry
- Form selection, form data extraction and form validation
- The submission status state machine and audit events
- Runtime flows against an in-memory store (process, submit, task)
"""
