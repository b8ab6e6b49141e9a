"""
Dashboard: FastAPI backend and report export services.
"""
