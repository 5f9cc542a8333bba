"""
HTTP layer.

Routes are split into two groups: ``/api/admin`` for the back office
(bearer token required, except for login) and ``/api/customer`` for the
public website.  ``router.py`` assembles both.
"""
