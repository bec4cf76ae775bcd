"""Terraform-style lifecycle management for Kubermatic projects."""

__version__ = "0.1.0"
