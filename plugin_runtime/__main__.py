from plugin_runtime.cli import run

run()
