from riemann_gpu.cli import main

raise SystemExit(main())
