from docsearch_mcp.mcp_server import run

if __name__ == "__main__":
    run()
