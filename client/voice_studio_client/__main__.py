from voice_studio_client.main import main

raise SystemExit(main())
