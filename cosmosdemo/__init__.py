"""
cosmosdemo: Azure Cosmos DB resource lifecycle demo

Walks a database and a container through create, throughput changes,
enumeration and delete using the account's administrative API.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
