# MediQuery API Routers
from . import query, system

__all__ = ['query', 'system']
