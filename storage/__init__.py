"""
Storage Module
存储模块 - 题目语料库
"""
from .item_store import (
    QdrantItemStore,
    SUMMARY_VECTOR,
    get_item_store,
)

__all__ = [
    "QdrantItemStore",
    "SUMMARY_VECTOR",
    "get_item_store",
]
