"""
Item Store
题目语料库存储 - 使用 Qdrant (payload 保存题目行, 命名向量 "summary" 保存摘要 embedding)
"""
from typing import Any, Dict, Iterator, List, Optional, Tuple
from pathlib import Path
import logging
import uuid

from core import ItemStatus, SimilarityMatch, TriviaItem
from processing.similarity import combined_trigram_score
from utils.exceptions import ItemConflictError, StorageError


logger = logging.getLogger(__name__)


SUMMARY_VECTOR = "summary"

# 幂等比较时忽略的字段
_VOLATILE_FIELDS = {"created_at", "embedding"}


def _point_id(item_id: str) -> str:
    """Qdrant 只接受 UUID / 整数 ID, 其他标识映射为稳定的 uuid5"""
    try:
        return str(uuid.UUID(str(item_id)))
    except ValueError:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, str(item_id)))


class QdrantItemStore:
    """
    持久化题目语料库

    - insert: 以 ID 唯一约束插入, 相同内容重复插入为 no-op
    - find_similar_summaries: 摘要三元组相似度 (pg_trgm 语义)
    - find_similar_embeddings: 摘要向量余弦相似度
    只有 status=active 的题目参与计数和相似度查询
    """
    
    def __init__(
        self,
        collection_name: str = "trivia_items",
        dimension: int = 768,
        persist_directory: Optional[str] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        scan_batch_size: int = 256,
        client: Any = None,
    ):
        """
        初始化 Qdrant

        Args:
            collection_name: 集合名称
            dimension: 向量维度
            persist_directory: 本地持久化目录 (None 且无 url = 内存模式)
            url: Qdrant Cloud / 远程服务 URL
            api_key: Qdrant Cloud API Key
            scan_batch_size: 三元组扫描分页大小
            client: 预先构建的 QdrantClient (测试或共享连接)
        """
        self.collection_name = collection_name
        self.dimension = dimension
        self.persist_directory = persist_directory
        self.url = url
        self.api_key = api_key
        self.scan_batch_size = max(1, int(scan_batch_size))
        
        self._client = client
        self._init_client()
    
    def _init_client(self):
        """初始化 Qdrant 客户端并确保集合存在"""
        from qdrant_client import QdrantClient
        from qdrant_client.models import Distance, PayloadSchemaType, VectorParams
        
        try:
            if self._client is not None:
                pass
            elif self.url:
                self._client = QdrantClient(url=self.url, api_key=self.api_key)
                logger.info(f"Qdrant connected to: {self.url}")
            elif self.persist_directory:
                persist_path = Path(self.persist_directory)
                persist_path.mkdir(parents=True, exist_ok=True)
                self._client = QdrantClient(path=str(persist_path))
                logger.info(f"Qdrant initialized with persistence at: {persist_path}")
            else:
                self._client = QdrantClient(":memory:")
                logger.info("Qdrant initialized in memory mode")
            
            if not self._client.collection_exists(self.collection_name):
                self._client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config={
                        SUMMARY_VECTOR: VectorParams(size=self.dimension, distance=Distance.COSINE),
                    },
                )
                if self.url:
                    self._client.create_payload_index(
                        collection_name=self.collection_name,
                        field_name="status",
                        field_schema=PayloadSchemaType.KEYWORD,
                    )
                logger.info(f"Created collection '{self.collection_name}' with dimension {self.dimension}")
        except Exception as exc:
            raise StorageError(f"Qdrant initialization failed: {exc}", {"collection": self.collection_name})
    
    @staticmethod
    def _active_filter():
        from qdrant_client.models import FieldCondition, Filter, MatchValue
        return Filter(must=[FieldCondition(key="status", match=MatchValue(value=ItemStatus.ACTIVE.value))])
    
    def count_active(self) -> int:
        """返回 active 题目数量"""
        try:
            result = self._client.count(
                collection_name=self.collection_name,
                count_filter=self._active_filter(),
                exact=True,
            )
        except Exception as exc:
            raise StorageError(f"Failed to count items: {exc}")
        return int(result.count)
    
    def get(self, item_id: str) -> Optional[TriviaItem]:
        """按 ID 读取题目 (含向量)"""
        try:
            records = self._client.retrieve(
                collection_name=self.collection_name,
                ids=[_point_id(item_id)],
                with_payload=True,
                with_vectors=True,
            )
        except Exception as exc:
            raise StorageError(f"Failed to read item {item_id}: {exc}")
        if not records:
            return None
        record = records[0]
        row = dict(record.payload or {})
        vectors = record.vector if isinstance(record.vector, dict) else {}
        if vectors.get(SUMMARY_VECTOR) is not None:
            row["embedding"] = list(vectors[SUMMARY_VECTOR])
        return TriviaItem.from_row(row)
    
    def insert(self, item: TriviaItem) -> bool:
        """
        插入一条题目

        Returns:
            True = 新写入; False = 相同内容已存在 (幂等 no-op)

        Raises:
            ItemConflictError: ID 已存在但内容不同
            StorageError: 写入失败
        """
        from qdrant_client.models import PointStruct
        
        existing = self.get(item.id)
        row = item.to_row()
        if existing is not None:
            stored = {k: v for k, v in existing.to_row().items() if k not in _VOLATILE_FIELDS}
            incoming = {k: v for k, v in row.items() if k not in _VOLATILE_FIELDS}
            if stored == incoming:
                logger.info(f"Item {item.id} already stored, skipping")
                return False
            raise ItemConflictError(f"Item id already exists with different content: {item.id}", item_id=item.id)
        
        payload = {k: v for k, v in row.items() if k != "embedding"}
        vector: Dict[str, List[float]] = {}
        if item.embedding is not None:
            if len(item.embedding) != self.dimension:
                raise StorageError(
                    f"Embedding dimension mismatch: {len(item.embedding)} != {self.dimension}",
                    {"item_id": item.id},
                )
            vector[SUMMARY_VECTOR] = list(item.embedding)
        
        try:
            self._client.upsert(
                collection_name=self.collection_name,
                points=[PointStruct(id=_point_id(item.id), vector=vector, payload=payload)],
                wait=True,
            )
        except Exception as exc:
            raise StorageError(f"Insert failed: {exc}", {"item_id": item.id})
        logger.info(f"Stored item {item.id}: {item.summary}")
        return True
    
    def iter_summaries(self) -> Iterator[Tuple[str, str]]:
        """分页遍历 active 题目的 (id, summary)"""
        offset = None
        while True:
            try:
                records, offset = self._client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=self._active_filter(),
                    limit=self.scan_batch_size,
                    offset=offset,
                    with_payload=["id", "summary"],
                    with_vectors=False,
                )
            except Exception as exc:
                raise StorageError(f"Summary scan failed: {exc}")
            for record in records:
                payload = record.payload or {}
                summary = str(payload.get("summary") or "").strip()
                if summary:
                    yield str(payload.get("id") or record.id), summary
            if offset is None:
                break
    
    def find_similar_summaries(
        self,
        candidate: str,
        threshold: float = 0.4,
        limit: int = 1,
    ) -> List[SimilarityMatch]:
        """三元组相似度 >= threshold 的题目, 按相似度降序"""
        matches: List[SimilarityMatch] = []
        for item_id, summary in self.iter_summaries():
            score = combined_trigram_score(candidate, summary, floor=threshold)
            if score >= threshold:
                matches.append(SimilarityMatch(id=item_id, summary=summary, score=score, method="trigram"))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[: max(1, int(limit))]
    
    def find_similar_embeddings(
        self,
        embedding: List[float],
        threshold: float = 0.85,
        limit: int = 1,
    ) -> List[SimilarityMatch]:
        """余弦相似度 >= threshold 的题目, 按相似度降序"""
        try:
            response = self._client.query_points(
                collection_name=self.collection_name,
                query=list(embedding),
                using=SUMMARY_VECTOR,
                query_filter=self._active_filter(),
                score_threshold=threshold,
                limit=max(1, int(limit)),
                with_payload=["id", "summary"],
            )
        except Exception as exc:
            raise StorageError(f"Embedding similarity query failed: {exc}")
        
        matches: List[SimilarityMatch] = []
        for hit in response.points:
            payload = hit.payload or {}
            matches.append(SimilarityMatch(
                id=str(payload.get("id") or hit.id),
                summary=str(payload.get("summary") or ""),
                score=float(hit.score),
                method="embedding",
            ))
        return matches
    
    def close(self) -> None:
        """关闭底层客户端连接"""
        client = getattr(self, "_client", None)
        if client is None:
            return
        close_fn = getattr(client, "close", None)
        if callable(close_fn):
            try:
                close_fn()
            except Exception as e:
                logger.debug(f"Failed to close Qdrant client: {e}")


# 工厂函数
def get_item_store(
    collection_name: Optional[str] = None,
    dimension: Optional[int] = None,
    **kwargs,
) -> QdrantItemStore:
    """
    获取题目存储实例 (参数 > .env 配置)
    """
    from config import get_embedding_settings, get_storage_settings
    settings = get_storage_settings()
    
    kwargs.setdefault("persist_directory", settings.qdrant_path)
    kwargs.setdefault("url", settings.qdrant_url)
    kwargs.setdefault("api_key", settings.qdrant_api_key)
    kwargs.setdefault("scan_batch_size", settings.scan_batch_size)
    
    return QdrantItemStore(
        collection_name=collection_name or settings.collection_name,
        dimension=dimension or get_embedding_settings().dimension,
        **kwargs,
    )
