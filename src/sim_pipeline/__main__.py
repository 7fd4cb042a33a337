from sim_pipeline.cli import main

raise SystemExit(main())
