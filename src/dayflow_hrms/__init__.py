"""DayFlow HRMS package.

Organized by feature modules (users, attendance, leaves, payroll, reports)
with a thin Flask controller layer over service/repository layers backed by
MongoDB.
"""
