"""Remote collaborators: protocols and httpx clients.

Modules
-------
protocols   Structural contracts consumed by the dispatch core
http        HttpConnector base (httpx.AsyncClient + error mapping)
inventory   InventoryClient
sources     SourcesClient
receptor    ReceptorClient
"""
