V3_LIB_CACHE_SIZE = 4096
