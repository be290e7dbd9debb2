"""External protocol adapters: farms and swap routers."""
