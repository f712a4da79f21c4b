"""Kubernetes bundle installation and cloud-init script execution for bring-your-own hosts."""

__version__ = "0.1.0"