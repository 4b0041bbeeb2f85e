from bedrock.concurrent.callable import (
    RemoteCallable,
    RemoteCallableStaticMethod,
    RemoteMethodInvocation,
    clear_producer_cache,
    produce,
    resolve_method,
)
from bedrock.concurrent.channel import DEFAULT_STREAM, RemoteChannel, channel_pair
from bedrock.concurrent.interceptor import CallSiteInterceptor, ExecutionSiteInterceptor, MethodCall

__all__ = [
    "CallSiteInterceptor",
    "DEFAULT_STREAM",
    "ExecutionSiteInterceptor",
    "MethodCall",
    "RemoteCallable",
    "RemoteCallableStaticMethod",
    "RemoteChannel",
    "RemoteMethodInvocation",
    "channel_pair",
    "clear_producer_cache",
    "produce",
    "resolve_method",
]
