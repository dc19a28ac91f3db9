"""Historical and current price lookup with caching, retry and throttling."""
