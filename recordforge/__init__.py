"""RecordForge - record web interactions and translate them into test code.

Sub-packages:
- recording: event IR, recording sessions and ingestion
- agent: in-page capture and resilient transport
- codegen: table-driven multi-language code generation
- api: FastAPI routers for ingestion, session control and generation
"""

__version__ = "0.4.0"
