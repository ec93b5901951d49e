"""REST API for the WorkZen payroll core."""
