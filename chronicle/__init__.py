"""
Chronicle backend package.

A FastAPI service serving history entries, a single profile (with an
uploaded picture kept in object storage) and feedback ratings out of a
relational store.
"""
