from eacchain.domain.chain.util.di.provider import ChainProvider

__all__ = ["ChainProvider"]
