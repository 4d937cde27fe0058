"""
Module ORM Registry (``hr_modules._orm_registry``).

Imports every ORM module so ``Base.metadata`` holds the complete schema
before tables are created.  ``create_all_tables()`` is the entry point
scripts and ``tests/conftest.py`` use.

Imports from the kernel and services (allowed: modules -> kernel,
services).  MUST NOT be imported by ``hr_kernel`` or ``hr_services``.
"""


def import_all_orm_models() -> None:
    """Register kernel, services, batch and every ``hr_modules.*.orm`` model.  Idempotent."""
    import hr_kernel.models  # noqa: F401
    import hr_services.orm  # noqa: F401
    # fmt: off
    import hr_modules.allowance.orm  # noqa: F401
    import hr_modules.attendance.orm  # noqa: F401
    import hr_modules.labor.orm  # noqa: F401
    import hr_modules.leave.orm  # noqa: F401
    import hr_modules.loan.orm  # noqa: F401
    import hr_modules.payroll.orm  # noqa: F401
    import hr_modules.transfer.orm  # noqa: F401
    import hr_batch.models  # noqa: F401  # batch job tables
    # fmt: on


def create_all_tables() -> None:
    """
    Create kernel + services + module tables.

    Preconditions:
        Engine initialized via ``init_engine_from_url()``.
    """
    from hr_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
