"""
DockerFromScratch
--------------------------------------------------

Idempotent Docker host setup for Ubuntu 24.04. Installs Docker CE, deploys
Portainer CE and optionally Nginx Proxy Manager, and converges hostname,
timezone, firewall and data storage on the local machine.

Version: 1.0.0 | License: MIT
"""

APP_NAME: str = "DockerFromScratch"
APP_TAGLINE: str = "Idempotent Docker Host Setup for Ubuntu 24.04"
VERSION: str = "1.0.0"
