from bedrock.deferred.eventually import Eventually, eventually

__all__ = ["Eventually", "eventually"]
