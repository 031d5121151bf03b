"""nextjs-mui-audit MCP tools."""
from . import audit

__all__ = ["audit"]
