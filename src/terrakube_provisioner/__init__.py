"""Terraform-style infrastructure-as-code for Terrakube."""

__version__ = "0.1.0"
