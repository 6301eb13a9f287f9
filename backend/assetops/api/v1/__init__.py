# API v1 Package
from assetops.api.v1 import depreciation, schedules, health

__all__ = [
    'depreciation',
    'schedules',
    'health',
]
