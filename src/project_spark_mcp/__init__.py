"""Project Spark MCP server: learning projects, progress tracking, and Gemini-backed generation."""
