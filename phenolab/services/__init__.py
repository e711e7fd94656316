"""
Services - store adapters and the coordination components built on them

DataAccess is imported from services.data_access directly.
"""
from .graph_store import GraphStore, GraphTransaction
from .document_store import DocumentStore
from .relational_store import RelationalStore
from .schema_service import SchemaService
from .relation_reconciler import RelationReconciler, ReconcileOutcome
from .validation import ValidationPipeline, require_admin
from .write_coordinator import WriteCoordinator

__all__ = [
    'GraphStore',
    'GraphTransaction',
    'DocumentStore',
    'RelationalStore',
    'SchemaService',
    'RelationReconciler',
    'ReconcileOutcome',
    'ValidationPipeline',
    'require_admin',
    'WriteCoordinator',
]
