"""ModHost - runtime module installation and lifecycle management"""

__version__ = "0.1.0"
