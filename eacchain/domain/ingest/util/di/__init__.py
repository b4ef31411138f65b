from eacchain.domain.ingest.util.di.provider import IngestProvider

__all__ = ["IngestProvider"]
