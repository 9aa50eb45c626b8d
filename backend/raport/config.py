"""
School-level configuration read from the environment.

These values only decorate printed output (report card header, audit
user for the administrator); none of them affect grading.
"""

import os

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "Pondok Modern Al-Ghozali")
SCHOOL_ADDRESS = os.getenv("SCHOOL_ADDRESS", "")
SCHOOL_PHONE = os.getenv("SCHOOL_PHONE", "")
SCHOOL_PRINCIPAL = os.getenv("SCHOOL_PRINCIPAL", "")
ACADEMIC_YEAR = os.getenv("ACADEMIC_YEAR", "2026/2027")

ADMIN_ID = "admin"
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")


def school_info() -> dict:
    """Header block printed on every report card."""
    return {
        "name": SCHOOL_NAME,
        "address": SCHOOL_ADDRESS,
        "phone": SCHOOL_PHONE,
        "principal": SCHOOL_PRINCIPAL,
        "academic_year": ACADEMIC_YEAR,
    }
