"""Crawl orchestration: checkpoints, deadlines, collaborators and file output."""
