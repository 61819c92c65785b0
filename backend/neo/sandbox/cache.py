from vercel.sandbox import Sandbox

# Process-level cache of live sandbox handles, keyed by sandbox name
SANDBOX_CACHE: dict[str, Sandbox] = {}
