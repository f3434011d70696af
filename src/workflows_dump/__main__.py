from workflows_dump.cli import main

raise SystemExit(main())
