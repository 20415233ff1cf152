"""
Modules package initialization.
This package contains the functional modules of the application.
"""

from postapi.modules import posts
from postapi.modules import media
