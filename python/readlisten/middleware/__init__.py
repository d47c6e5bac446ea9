"""Middleware modules for the readlisten API."""

from readlisten.middleware.cors import ListeningCORSMiddleware
from readlisten.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = ["ListeningCORSMiddleware", "RequestIDMiddleware", "REQUEST_ID_HEADER"]
