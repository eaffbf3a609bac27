"""Main application entry point for the FastAPI application.

This module serves as the central entry point for the application.
It initializes the application and creates the FastAPI instance using
the application factory pattern.
"""

from timeledger.core.application import create_application
from timeledger.core.initialization import initialize_application

initialize_application()

app = create_application()
