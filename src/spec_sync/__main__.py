from spec_sync.cli import main

raise SystemExit(main())
