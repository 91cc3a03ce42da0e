"""FastAPI backend for engineer staffing: projects, assignments and capacity.
This file just marks `staffing` as a package.
"""
