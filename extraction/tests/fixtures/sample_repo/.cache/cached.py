def cached_helper():
    return None
