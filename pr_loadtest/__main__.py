"""Allow ``python -m pr_loadtest``."""

from pr_loadtest.runner import main

if __name__ == "__main__":
    raise SystemExit(main())
