"""nextjs-mui-audit MCP Server - Main entry point."""
import logging
import sys

from mcp.server.fastmcp import FastMCP

from nextjs_mui_audit.config import VERSION, AuditConfig
from nextjs_mui_audit.tools import audit

# Configure logging to stderr (CRITICAL: stdout is reserved for JSON-RPC)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)]
)

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("nextjs-mui-audit")


def main():
    """Main entry point for the MCP server."""
    try:
        # Load configuration from the working directory
        config = AuditConfig.load()
        logger.info(f"nextjs-mui-audit v{VERSION} starting...")
        logger.info(f"Base directory: {config.base_dir}")
        if config.source_path:
            logger.info(f"Config file: {config.source_path}")

        # Register tools
        logger.info("Registering tools...")
        audit.register(mcp, config)
        logger.info("Tools registered: audit_project, fix_project, get_audit_rules")

        # Run the server
        logger.info("Starting MCP server on stdio...")
        mcp.run(transport="stdio")

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
