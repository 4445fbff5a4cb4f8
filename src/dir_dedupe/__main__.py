from dir_dedupe.cli import main

raise SystemExit(main())
