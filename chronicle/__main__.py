from chronicle.run import main

raise SystemExit(main())
