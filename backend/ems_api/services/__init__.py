# Services package init
"""
EMS API — Services Layer
==========================

What:  The layer between routes (HTTP) and the database.

Service Inventory:
    - PersistenceGateway: parameterized insert/select statements for the
      Timekeeping and Payroll tables, each traced as a SQL span.
"""
