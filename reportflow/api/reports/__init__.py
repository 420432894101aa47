"""Report request resources.

Usage
-----
Import the resources for route registration::

    from reportflow.api.reports.resources import ReportItemResource
"""
