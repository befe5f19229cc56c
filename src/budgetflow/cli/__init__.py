"""
Command Line Interface

click command groups for the questionnaire and the cashflow reports.
"""
