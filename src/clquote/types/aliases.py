type BlockNumber = int
type ChainId = int
type Seconds = float
type Word = int
