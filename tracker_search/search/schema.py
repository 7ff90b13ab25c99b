"""Index schema definition and lifecycle.

The analysis chain and mappings are fixed for the lifetime of an index.
Changing anything here requires ``recreate_index()`` followed by a full
reindex.
"""

import copy
import logging

from elasticsearch import BadRequestError, NotFoundError

from .engine import SearchEngine
from .errors import SchemaConflict
from .registry import PARENT_TYPE, SearchTypeRegistry
from .transformer import JOIN_FIELD

logger = logging.getLogger(__name__)

RU_STOPWORDS = (
    "а,без,более,бы,был,была,были,было,быть,в,вам,вас,весь,во,вот,все,всего,"
    "всех,вы,где,да,даже,для,до,его,ее,если,есть,еще,же,за,здесь,и,из,или,им,"
    "их,к,как,ко,когда,кто,ли,либо,мне,может,мы,на,надо,наш,не,него,нее,нет,ни,"
    "них,но,ну,о,об,однако,он,она,они,оно,от,очень,по,под,при,с,со,так,также,"
    "такой,там,те,тем,то,того,тоже,той,только,том,ты,у,уже,хотя,чего,чей,чем,"
    "что,чтобы,чье,чья,эта,эти,это"
)

EN_STOPWORDS = (
    "a,an,and,are,as,at,be,but,by,for,if,in,into,is,it,no,not,of,on,or,such,"
    "that,the,their,then,there,these,they,this,to,was,will,with"
)

# Analysis settings (applied at index creation only)
INDEX_ANALYSIS = {
    "analyzer": {
        "default": {
            "type": "custom",
            "tokenizer": "standard",
            "char_filter": ["html_strip", "ru_mapping"],
            "filter": [
                "lowercase",
                "custom_word_delimiter",
                "en_stopwords",
                "ru_stopwords",
                "ru_RU",
                "en_US",
            ],
        },
    },
    "char_filter": {
        # Look-alike letters: search "ёлка" and "елка" the same way
        "ru_mapping": {
            "type": "mapping",
            "mappings": ["Ё=>Е", "ё=>е"],
        },
    },
    "filter": {
        "ru_stopwords": {
            "type": "stop",
            "stopwords": RU_STOPWORDS,
        },
        "en_stopwords": {
            "type": "stop",
            "stopwords": EN_STOPWORDS,
        },
        # "WiFi-router2" -> wifi, router2, wifirouter2, WiFi-router2, ...
        "custom_word_delimiter": {
            "type": "word_delimiter",
            "generate_word_parts": True,
            "generate_number_parts": True,
            "catenate_words": True,
            "catenate_numbers": False,
            "catenate_all": True,
            "split_on_case_change": True,
            "preserve_original": True,
            "split_on_numerics": False,
        },
        "ru_RU": {
            "type": "hunspell",
            "locale": "ru_RU",
            "dedup": True,
        },
        "en_US": {
            "type": "hunspell",
            "locale": "en_US",
            "dedup": True,
        },
    },
}

# Field mappings shared by every document type
BASE_PROPERTIES = {
    "type": {"type": "keyword"},
    "title": {"type": "text", "analyzer": "default"},
    "description": {"type": "text", "analyzer": "default"},
    "datetime": {"type": "date"},
    "url": {"type": "text", "index": False},
    "fixed_version": {"type": "keyword"},
    "is_public": {"type": "boolean"},
}


class IndexSchemaManager:
    """Creates, deletes and recreates the search index."""

    def __init__(
        self,
        engine: SearchEngine,
        registry: SearchTypeRegistry,
        number_of_shards: int = 1,
        number_of_replicas: int = 0,
    ):
        self.engine = engine
        self.registry = registry
        self.number_of_shards = number_of_shards
        self.number_of_replicas = number_of_replicas

    def index_settings(self) -> dict:
        return {
            "index": {
                "number_of_shards": self.number_of_shards,
                "number_of_replicas": self.number_of_replicas,
                "max_ngram_diff": 6,
            },
            "analysis": copy.deepcopy(INDEX_ANALYSIS),
        }

    def index_mappings(self) -> dict:
        """Mappings with the join relation covering every registered type."""
        properties = copy.deepcopy(BASE_PROPERTIES)
        for search_type in self.registry:
            properties.update(copy.deepcopy(search_type.mapping))
        properties[JOIN_FIELD] = {
            "type": "join",
            "relations": {PARENT_TYPE: self.registry.singulars},
        }
        return {"properties": properties}

    async def index_exists(self) -> bool:
        return await self.engine.index_exists()

    async def create_index(self) -> None:
        """Create the index.

        Raises:
            SchemaConflict: If the index already exists.
        """
        if await self.engine.index_exists():
            raise SchemaConflict(self.engine.index_name, "Index already exists")
        try:
            await self.engine.create_index(self.index_settings(), self.index_mappings())
        except BadRequestError as exc:
            if exc.error == "resource_already_exists_exception":
                raise SchemaConflict(self.engine.index_name, "Index already exists") from exc
            raise
        logger.info("Search index created: %s", self.engine.index_name)

    async def delete_index(self) -> None:
        """Delete the index.

        Raises:
            SchemaConflict: If the index does not exist.
        """
        try:
            await self.engine.delete_index()
        except NotFoundError as exc:
            raise SchemaConflict(self.engine.index_name, "Index does not exist") from exc
        logger.info("Search index deleted: %s", self.engine.index_name)

    async def recreate_index(self) -> None:
        """Drop (if present) and create the index, then refresh it.

        The index is absent or empty until the caller finishes importing;
        searches in that window return nothing.
        """
        if await self.engine.index_exists():
            await self.delete_index()
        await self.create_index()
        await self.engine.refresh()
