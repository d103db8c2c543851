"""
resumepdf - render JSON resumes to PDF with a headless browser.
"""

__version__ = "0.1.0"
