"""Command line interface for SolveCrawl."""
