"""AssignmentBot - assignment deadline tracking from ICS calendar feeds."""

__version__ = "1.0.0"
__author__ = "AssignmentBot Team"
