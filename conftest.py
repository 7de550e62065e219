pytest_plugins = ["boardguru_e2e.plugin", "pytester"]
