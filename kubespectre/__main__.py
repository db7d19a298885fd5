"""
Entry point for running kubespectre as a module.

Usage:
    python -m kubespectre --help
    python -m kubespectre audit --format json
"""

from kubespectre.cli import main

if __name__ == "__main__":
    main()
