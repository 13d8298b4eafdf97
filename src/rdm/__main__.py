from rdm.main import main

raise SystemExit(main())
