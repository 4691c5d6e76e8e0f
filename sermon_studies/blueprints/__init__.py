from .studies import studies_bp

__all__ = ['studies_bp']
