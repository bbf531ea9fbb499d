"""Proxmox VE API client.

Typed client for the Proxmox VE cluster management REST API. Resource
modules funnel every call through the authenticated transport gateway in
:mod:`proxmox_api.gateway`.
"""

__version__ = "0.1.0"
