"""Command-line tools for ragpipe.

- ``python -m ragpipe.cli`` (or the ``ragpipe`` console script) -- ingest
  text, URLs and directories, query the corpus, and manage stored vectors.
"""
