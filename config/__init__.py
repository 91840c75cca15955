"""
Configuration Package
=====================
Contains global settings and district sensitivity profiles.
"""

from .settings import *
from .sensitivity import SENSITIVITY_PROFILES, get_sensitivity_profile
