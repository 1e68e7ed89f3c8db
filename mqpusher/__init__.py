"""
mqpusher: push rows from a CSV file or a PostgreSQL query to RabbitMQ.
"""

__version__ = "1.0.0"
