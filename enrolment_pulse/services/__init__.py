"""
Services package initialization.
"""
from enrolment_pulse.services.data_loader import (
    CSVRowSource,
    DatabaseRowSource,
    EnrolmentDataStore,
    LoadResult,
    get_data_store,
    load_records,
    parse_record,
)
from enrolment_pulse.services.insights_engine import InsightsEngine
from enrolment_pulse.services.query_engine import QueryEngine
from enrolment_pulse.services.chat_service import ChatService

__all__ = [
    "CSVRowSource",
    "DatabaseRowSource",
    "EnrolmentDataStore",
    "LoadResult",
    "get_data_store",
    "load_records",
    "parse_record",
    "InsightsEngine",
    "QueryEngine",
    "ChatService",
]
