"""Containers used by the progressive aligner: clusters of aligned lines and the distance matrix between them."""
from massalign.containers.cluster import Cluster
from massalign.containers.distance import DistanceMatrix
