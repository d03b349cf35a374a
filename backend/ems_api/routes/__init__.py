# Routes package init
"""
EMS API — API Routes Package
==============================

Route Inventory:
    - billing.py:  POST /ems/billing                 (record project work)
                   GET  /ems/billing/{employee_id}   (billing details)
    - payroll.py:  POST /ems/payroll/add             (add employee to payroll)
                   GET  /ems/payroll/{employee_id}   (employee payroll)
    - health.py:   GET  /health                      (service health check)

Routes are thin: bind input, open the handler span, call the persistence
gateway, shape the response.
"""
