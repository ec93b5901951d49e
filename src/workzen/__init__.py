"""WorkZen payroll core: salary structures, attendance and payruns."""

__version__ = "0.1.0"
