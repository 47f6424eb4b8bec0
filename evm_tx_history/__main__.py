import sys

from evm_tx_history.cli import main


sys.exit(main())
