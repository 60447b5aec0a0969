"""Drug-drug interaction checker backed by official label text.

This package resolves two drug names to their DailyMed labels, pulls the
"Drug Interactions" section out of each, and asks an LLM to summarize what
the two excerpts say about using the drugs together, citing both labels.
"""
