"""Attendance & payroll ledger.

This package is organized by feature modules (attendance, corrections,
payroll, ...) on top of a keyed ledger store with atomic, optimistically
checked commits. It exposes typed service calls only; transport and
authorization live with the caller.
"""
