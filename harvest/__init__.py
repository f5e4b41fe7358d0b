"""Checkpointed corpus harvester: crawl, annotate and serialise chapter trees."""
