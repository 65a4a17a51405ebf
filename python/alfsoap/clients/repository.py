"""
A client for the Alfresco RepositoryService, which provides queries over and lookups of
nodes.  The methods return the service's responses as plain data (see
:py:func:`~alfsoap.clients.soap.element_to_data`); the shape of the data varies between
server versions, so callers should pass it through :py:mod:`alfsoap.normalize`.
"""
from collections.abc import Mapping

from .soap import SoapService
from ..noderef import NodeReference

LUCENE = "lucene"

class RepositoryService(SoapService):
    """
    a client for querying the repository
    """
    service_name = "RepositoryService"
    namespace = "http://www.alfresco.org/ws/service/repository/1.0"

    async def get_stores(self):
        """
        return the list of stores in the repository, each as a dictionary with ``scheme``
        and ``address`` values.
        """
        result = await self.call('getStores')
        if isinstance(result, list):
            return result
        for key in ('getStoresReturn', 'store', 'stores'):
            if result.get(key):
                stores = result[key]
                return stores if isinstance(stores, list) else [stores]
        return []

    async def query(self, store: Mapping, statement: str, language: str=LUCENE,
                    include_metadata: bool=False):
        """
        run a query against a store

        :param dict store:       the store to search, given by its ``scheme`` and ``address``
        :param str statement:    the query statement (e.g. ``PATH:"/app:company_home/*"``)
        :param str language:     the query language
        :param bool include_metadata:  True to request that metadata be included in the results
        """
        return await self.call('query', {
            "store": { "scheme": store['scheme'], "address": store['address'] },
            "query": { "language": language, "statement": statement },
            "includeMetaData": include_metadata
        })

    async def get(self, ref: NodeReference):
        """
        return the description of a node, including its properties
        """
        return await self.call('get', { "where": { "nodes": [ ref.to_soap() ] } })

    async def query_children(self, ref: NodeReference):
        """
        return the listing of the children of a node
        """
        return await self.call('queryChildren', { "node": ref.to_soap() })

    async def query_parents(self, ref: NodeReference):
        """
        return the listing of the parents of a node
        """
        return await self.call('queryParents', { "node": ref.to_soap() })
