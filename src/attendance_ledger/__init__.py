"""Attendance Ledger package.

Keeps a per-employee monthly leave ledger consistent with attendance records.
Organized by feature modules (ledger, attendance, requests, ...) with
repository Protocols, store adapters and service layers on top.
"""
